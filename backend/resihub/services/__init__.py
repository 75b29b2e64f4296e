# Services package init
"""
ResiHub Backend — Services Layer
==================================

What:  Business logic between the routes (HTTP) and the database.

Service Inventory:
    - identity / identity_stores: identity types and the per-scope SQL stores
    - IdentityResolver: email → identity across central and tenant databases
    - credentials: bcrypt hashing and verification
    - TokenIssuer: signed one-hour session tokens
    - AuthService: the login flow
    - StorageService: S3-compatible object storage
    - ImageUploadService: image validation, upload and cleanup
    - ServiceCatalog: service listings, nearby search and reviews
"""
