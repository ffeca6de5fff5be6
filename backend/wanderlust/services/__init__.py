# Services package init
"""
Wanderlust — Services Layer
===========================

Business logic between routes and the database. Services are stateless;
each call takes the request's AsyncSession and commits its own writes
before returning, so a redirect is only sent for data that is stored.

Service Inventory:
    - FileService: listing image validation, storage, and cleanup
    - ListingService: listing queries and create/update/delete with images
    - ReviewService: review lookup, create and delete
    - UserService: account lookup and registration
"""
