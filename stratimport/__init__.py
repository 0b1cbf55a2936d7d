"""
stratimport - Smart spreadsheet import for strategy portfolios.

Turns arbitrary workbooks into validated pillar, KPI, initiative, project,
task, resource and milestone records.
"""

__version__ = "0.1.0"
