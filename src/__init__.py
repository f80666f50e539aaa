"""Job Finder document generator.

Turns a candidate profile and a target job into tailored resume and cover
letter PDFs, tracking each run as a persisted, stage-by-stage request.
"""

__version__ = "0.1.0"
