"""
models/__init__.py
------------------
Re-export all models so create_tables.py (and Alembic, if added) can import
Base and discover all tables via a single import:

    from mdsign.models import Base
"""

from mdsign.db.base import Base
from mdsign.models.tenant import Tenant
from mdsign.models.profile import Profile, ProfileRole
from mdsign.models.folder import Folder
from mdsign.models.document import DocumentCache
from mdsign.models.usage import DocumentUsage
from mdsign.models.organization import Organization, OrganizationMember

__all__ = [
    "Base",
    "Tenant",
    "Profile",
    "ProfileRole",
    "Folder",
    "DocumentCache",
    "DocumentUsage",
    "Organization",
    "OrganizationMember",
]
