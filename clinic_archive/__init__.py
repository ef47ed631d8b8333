"""
Clinic Archive Lifecycle Service
Archive / unarchive / hide of portal records with optimistic client stores
"""

__version__ = "1.0.0"
