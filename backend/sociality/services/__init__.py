"""
Sociality Backend — Services Layer
===================================

Business rules between the routes (HTTP) and the models (persistence).
Services take the request's AsyncSession, raise sociality.exceptions errors
and return schema objects; they never build HTTP responses.

Service Inventory:
    - AuthService:    passwords, tokens, register/login
    - UserService:    lookup, batched stats, follow state, search, follow lists
    - PostService:    feed, posts, likes, saves, comments
    - FollowService:  follow/unfollow by username
    - MeService:      own profile, profile updates, personal listings
    - UploadService:  image validation, resizing and storage
    - transformers:   ORM rows → response views
"""
