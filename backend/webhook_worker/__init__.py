"""
Webhook worker: an edge service that screens Clerk webhooks and forwards
them to the back-office API.
"""
