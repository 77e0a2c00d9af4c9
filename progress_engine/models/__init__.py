"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Content tables (leagues/weeks/sections/resources) are read-only to this core
    - Achievement tables (user_badges/user_specializations) are append-only

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from progress_engine.models.user import User  # noqa: F401
from progress_engine.models.cohort import Cohort  # noqa: F401
from progress_engine.models.league import League  # noqa: F401
from progress_engine.models.week import Week  # noqa: F401
from progress_engine.models.section import Section  # noqa: F401
from progress_engine.models.resource import Resource  # noqa: F401
from progress_engine.models.enrollment import Enrollment  # noqa: F401
from progress_engine.models.resource_progress import ResourceProgress  # noqa: F401
from progress_engine.models.section_progress import SectionProgress  # noqa: F401
from progress_engine.models.badge import Badge  # noqa: F401
from progress_engine.models.user_badge import UserBadge  # noqa: F401
from progress_engine.models.specialization import (  # noqa: F401
    Specialization, SpecializationLeague,
)
from progress_engine.models.user_specialization import UserSpecialization  # noqa: F401
from progress_engine.models.audit_log import AuditLog  # noqa: F401
