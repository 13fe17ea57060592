"""
Soulmark registry - Payment-anchored identity marks and handles.

Donations and orders paid through an external processor mint marks;
marks prove eligibility to claim a permanent, globally unique handle.
"""

__version__ = "0.1.0"
