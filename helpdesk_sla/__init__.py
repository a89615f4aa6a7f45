"""
Helpdesk SLA
============

Business-time SLA engine for the bank helpdesk: due dates, elapsed business
minutes and business-hours checks over configurable per-scope business hours
and holiday calendars.
"""

__version__ = "1.0.0"
