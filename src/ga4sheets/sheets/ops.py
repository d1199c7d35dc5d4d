import datetime
import re

from googleapiclient.discovery import Resource

from . import GoogleSheetsMaxTitle

_PLAIN_TITLE_RE = re.compile(r"^\w+$")

def quote_title(title: str) -> str:
    """
    A1 ranges need the sheet title quoted if it has anything other than
    word characters.  Embedded single quotes are doubled.
    """
    t = str(title)
    if _PLAIN_TITLE_RE.match(t):
        return t
    return "'" + t.replace("'", "''") + "'"

def report_tab_title(prefix: str, kind: str,
                     now: datetime.datetime|None = None) -> str:
    stamp = (now or datetime.datetime.now()).replace(microsecond=0)
    return f"{prefix} {kind} {stamp.strftime('%Y-%m-%d %H:%M:%S')}"[:GoogleSheetsMaxTitle]

def read_tab(service: Resource, spreadsheetId: str, title: str) -> list[list[str]]:
    """
    Wrapper for calling the batchGet() method on the values resource.
    See https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets.values/batchGet
    The whole tab comes back as formatted strings, trailing empty cells and
    rows are left off by the API.
    """
    r = service.spreadsheets().values().batchGet(spreadsheetId=spreadsheetId,
                                                 ranges=[quote_title(title)],
                                                 majorDimension="ROWS",
                                                 valueRenderOption="FORMATTED_VALUE").execute()
    value_ranges = (r or {}).get("valueRanges", [])
    if not value_ranges:
        return []
    return value_ranges[0].get("values", [])

def add_tab(service: Resource, spreadsheetId: str, title: str) -> int:
    """
    Wrapper for an addSheet request through the spreadsheet batchUpdate() method.
    See https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets/request#addsheetrequest
    Returns the new sheetId.
    """
    body = {"requests": [{"addSheet": {"properties": {"title": title}}}]}
    r = service.spreadsheets().batchUpdate(spreadsheetId=spreadsheetId, body=body).execute()
    replies = (r or {}).get("replies", [{}])
    return replies[0].get("addSheet", {}).get("properties", {}).get("sheetId", -1)

def write_rows(service: Resource, spreadsheetId: str, title: str,
               rows: list[list]) -> int:
    """
    Wrapper for calling the batchUpdate() method on the values resource.
    See https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets.values/batchUpdate
    RAW input so nothing in a detail string gets treated as a formula.
    Returns the number of cells updated.
    """
    if not rows:
        return 0
    body = {
        "valueInputOption": "RAW",
        "data": [{"range": f"{quote_title(title)}!A1",
                  "majorDimension": "ROWS",
                  "values": rows}]
    }
    r = service.spreadsheets().values().batchUpdate(spreadsheetId=spreadsheetId, body=body).execute()
    return (r or {}).get("totalUpdatedCells", 0)
