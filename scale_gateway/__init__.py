"""
HTTP gateway for HF2211 networked weighing scales.

Speaks the scale's STX/ETX framed request-response protocol over raw TCP and
exposes weight, tare, status and preset tare operations over a REST API.
"""

__version__ = "1.0.0"
