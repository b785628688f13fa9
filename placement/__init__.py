"""
Internship placement core.

Matches students to limited-capacity internship postings under a staged
approval workflow, and lists postings through configurable filters and
preference-weighted ranking.
"""

__version__ = "0.1.0"
