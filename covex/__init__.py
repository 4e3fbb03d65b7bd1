"""
COVEX package
=============

COVID exploratory report (COVEX).

- The CLI entry point is in `covex/cli.py`.
- The cleaning/reconciliation pipeline is in `covex/pipeline.py`.
- Dataset loading is in `covex/loader.py`.
- The DOCX report is in `covex/report.py`.
"""

__version__ = '0.1.0'
