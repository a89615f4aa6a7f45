"""
Shared Kernel Module
====================

Generic infrastructure shared by the SLA module and the HTTP layer:
structured logging and request middleware.

DO NOT add business-calendar logic to the shared kernel.
"""
