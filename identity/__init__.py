"""
Identity provider adapters.

The catalog never stores credentials; it delegates account creation and
token verification to an external provider (Supabase Auth).
"""
