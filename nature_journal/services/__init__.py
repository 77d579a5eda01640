# Services package init
"""
Nature Journal — Services Layer
=================================

What:  Calls to the external collaborators, one module per service.
How:   Services raise JournalError subclasses; they never show notices.

Service Inventory:
    - IdentityService (abstract) / FirebaseIdentityService: anonymous identity
    - MediaPicker (abstract) / DeviceMediaPicker: camera and gallery access
    - ImageService: read and validate a staged image
    - CloudinaryUploader: multipart upload, returns the secure URL
    - EntryStore: insert / query-by-owner / delete journal entries
    - calendar: grouping of entries by calendar day
"""
