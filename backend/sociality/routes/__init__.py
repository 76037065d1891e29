"""
Sociality Backend — API Routes Package
=======================================

Route Inventory:
    - auth.py:      POST /api/auth/register, POST /api/auth/login
    - me.py:        GET/PATCH /api/me, GET /api/me/{saved,likes,followers,following}
    - feed.py:      GET /api/feed
    - posts.py:     POST /api/posts, GET/DELETE /api/posts/{id},
                    POST/DELETE /api/posts/{id}/{like,save},
                    GET /api/posts/{id}/likes, GET/POST /api/posts/{id}/comments
    - comments.py:  DELETE /api/comments/{id}
    - follow.py:    POST/DELETE /api/follow/{username}
    - users.py:     GET /api/users/search, GET /api/users/{username}[/posts|/likes|/followers|/following]
    - health.py:    GET /health
    - compat.py:    response envelopes shared by the listing routes

Routes stay thin: resolve the caller, validate input, call a service, render.
"""
