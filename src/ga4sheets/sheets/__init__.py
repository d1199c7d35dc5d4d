"""
The bits of Google Sheets needed to read input tabs and write report tabs
"""

SHEETS_API_NAME = "sheets"
SHEETS_API_VERSION = "v4"

# Sheets rejects a tab title over this length
GoogleSheetsMaxTitle = 100
