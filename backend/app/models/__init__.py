"""Aggregate model imports for Alembic auto-detection."""

from app.models.activity import ActivityEntry  # noqa: F401
from app.models.client import Client, ClientService  # noqa: F401
from app.models.note import Note, NoteAction  # noqa: F401
from app.models.onboarding import OnboardingRun, OnboardingTemplate  # noqa: F401
from app.models.product import Product, ProductModule  # noqa: F401
from app.models.project import Project, ProjectPhase, Task  # noqa: F401
from app.models.time_entry import TimeEntry  # noqa: F401
