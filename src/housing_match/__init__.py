"""
Corporate housing → Smart Matching → Manager review → Backend confirmation

A deterministic, testable pipeline that pulls unassigned employees and
vacant units from the hosted housing backend, proposes roommate pairings
with a weighted compatibility score, and confirms accepted pairings in a
single server-side operation.
"""

__version__ = "0.1.0"
