"""EduLead CRM dashboard API."""

__version__ = "1.0.0"
