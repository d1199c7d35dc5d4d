import datetime
import logging

from googleapiclient.discovery import Resource

from ..report import OutcomeRecord, RunSummary
from .ops import add_tab, report_tab_title, write_rows

logger = logging.getLogger(__name__)

REPORT_HEADER = ["Row", "Identifier", "Action", "Detail"]


class SheetReportSink():
    """
    Collects a run's outcomes and writes them to a new timestamped tab
    once the summary arrives, so a run is one tab and one values write.
    """
    def __init__(self, service: Resource, spreadsheetId: str, kind: str,
                 prefix: str = "Report",
                 now: datetime.datetime|None = None) -> None:
        self._service = service
        self.spreadsheet_id = spreadsheetId
        self.title = report_tab_title(prefix, kind, now)
        self.rows = []

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{self.spreadsheet_id}<{self.title}>"

    def emit(self, outcome: OutcomeRecord) -> None:
        self.rows.append(outcome.to_row())

    def emit_summary(self, summary: RunSummary) -> None:
        values = [REPORT_HEADER, *self.rows, []]
        values.append(["Summary", *[f"{k}={v}" for k,v in summary.as_dict().items()]])
        add_tab(self._service, self.spreadsheet_id, self.title)
        cells = write_rows(self._service, self.spreadsheet_id, self.title, values)
        logger.info("wrote %d outcome(s) (%d cells) to report tab %s", len(self.rows), cells, self.title)


def write_table(service: Resource, spreadsheetId: str, title: str,
                header: list[str], rows: list[list]) -> str:
    """Dump a listing into its own new tab"""
    add_tab(service, spreadsheetId, title)
    write_rows(service, spreadsheetId, title, [header, *rows])
    return title
