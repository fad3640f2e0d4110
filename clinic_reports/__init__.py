"""
Falasifah Dental Clinic Reports

Copyright: © 2025 Falasifah Dental Clinic
"""

__version__ = "1.0.0"
