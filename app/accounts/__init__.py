"""
Accounts app: users, registration and the identity context.

Everything the chat core needs to know about a caller goes through
accounts.identity (credential -> user id, revocation check).
"""
