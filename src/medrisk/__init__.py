"""
medrisk: retrieve patient records from the DemoMed assessment API, score them
against a fixed clinical risk rubric, and submit the resulting assessment.
"""

__version__ = "0.1.0"
