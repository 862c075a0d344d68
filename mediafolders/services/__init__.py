"""Business logic services.

Import services from their modules (``services.folder_service`` etc.);
repositories depend on ``services.usage``, so nothing is re-exported here.
"""
