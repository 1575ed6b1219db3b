"""
Storage Module

Frappe-backed collaborators for the suggestion engine:
- Session and availability stores over DocTypes (doctype_stores.py)
- User timezone resolution with a TTL cache (timezone.py)
- Site configuration overrides (site_config.py)
"""
