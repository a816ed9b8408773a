"""
OncoVector - clinical decision support backend.

Staged diagnostic pipeline that ranks verified reference cases against a
patient presentation and synthesizes a clinical report.
"""
__version__ = "1.0.0"
