"""
Clerk webhook ingestion: signature verification, event dispatch and
payload transformation.
"""
