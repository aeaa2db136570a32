"""Certificates of completion.

Provides:
- One certificate per (user, course), issued when the course is completed
- Unique public numbers for verification
"""

from learnhub.certificates.models import CERTIFICATES_TABLES_CQL, Certificate


__all__ = [
    "CERTIFICATES_TABLES_CQL",
    "Certificate",
]
