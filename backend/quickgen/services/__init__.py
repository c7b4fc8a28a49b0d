# Services package init
"""
QuickGen Backend: Services Layer
================================

What:  Business rules between the HTTP routes and the vendors/database.
How:   Module-level singletons, composed by CreationService. Routes call
       CreationService; nothing else in the routes talks to a vendor.

Service Inventory:
    - ResilientCallExecutor: 429 retry with exponential backoff
    - LLMService (abstract) / GeminiService: text generation
    - ImageService: ClipDrop rendering and Cloudinary hosting/effects
    - FileService: upload size and type checks, resume text extraction
    - ClerkIdentityService: plan, free-usage counter, quota updates
    - quota: plan and free-tier policy per operation
    - CreationService: gate → execute → persist → count
"""
