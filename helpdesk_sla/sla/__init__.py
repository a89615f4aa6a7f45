"""
SLA Module
==========

Bounded context for business-time Service Level Agreement calculations.

Responsibilities:
- Calculate SLA due dates inside business hours, skipping holidays
- Measure elapsed business minutes between two instants
- Answer whether an instant is inside business hours, and when they next open
- Cache business hours and holidays per department/unit scope
- Administer business hours and holidays
"""
