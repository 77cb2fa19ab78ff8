"""Google Sheets storage for completed project submissions."""

from __future__ import annotations

import asyncio
import json
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

import gspread
import requests
import structlog
from google.auth.exceptions import GoogleAuthError
from gspread.exceptions import GSpreadException, WorksheetNotFound

from intake_bot.exceptions import SinkFatalError

logger = structlog.get_logger(__name__)

SHEETS_SCOPES = (
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
)

DATE_COLUMN = "Date"
DRIVE_LINK_COLUMN = "Drive Link"


def load_service_account_info(raw: str) -> Dict[str, Any]:
    """Parse service account JSON stored in an environment variable."""
    blob = (raw or "").strip().lstrip("'\"").rstrip("'\"")
    if not blob:
        raise ValueError("Google service account key is not configured")
    info = json.loads(blob)
    if not isinstance(info, dict) or "client_email" not in info:
        raise ValueError("Google service account key must be a JSON object with client_email")
    return info


def build_headers(fields: Sequence[str]) -> List[str]:
    return [DATE_COLUMN, *fields, DRIVE_LINK_COLUMN]


class SheetsService:
    """Appends one row per finished survey, managing the header row."""

    def __init__(
        self,
        spreadsheet_id: str,
        fields: Sequence[str],
        *,
        service_account_info: Optional[Mapping[str, Any]] = None,
        worksheet_title: str = "Renovation Projects",
        timeout: float = 15.0,
        client: Optional[gspread.Client] = None,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.headers = build_headers(fields)
        self.worksheet_title = worksheet_title
        self.timeout = timeout
        self._service_account_info = dict(service_account_info or {})
        self._client = client
        self._worksheet: Optional[gspread.Worksheet] = None

    def _get_client(self) -> gspread.Client:
        if self._client is None:
            self._client = gspread.service_account_from_dict(
                self._service_account_info,
                scopes=list(SHEETS_SCOPES),
            )
            # Bounds every request made from the worker thread.
            self._client.set_timeout(self.timeout)
        return self._client

    def _open_worksheet(self) -> gspread.Worksheet:
        if self._worksheet is not None:
            return self._worksheet

        spreadsheet = self._get_client().open_by_key(self.spreadsheet_id)
        try:
            worksheet = spreadsheet.worksheet(self.worksheet_title)
        except WorksheetNotFound:
            worksheet = spreadsheet.add_worksheet(
                self.worksheet_title,
                rows=1000,
                cols=len(self.headers),
            )
            logger.info("Created worksheet", title=self.worksheet_title)

        self._worksheet = worksheet
        return worksheet

    def _ensure_headers(self, worksheet: gspread.Worksheet) -> List[str]:
        """Return the active header row, writing or extending it when needed."""
        existing = list(worksheet.row_values(1))
        # Blank cells inside the row keep their column; only the tail is trimmed.
        while existing and not existing[-1]:
            existing.pop()
        if not existing:
            worksheet.update(range_name="A1", values=[self.headers])
            logger.info("Header row written", columns=len(self.headers))
            return list(self.headers)

        missing = [header for header in self.headers if header not in existing]
        if missing:
            existing = existing + missing
            worksheet.update(range_name="A1", values=[existing])
            logger.info("Header row extended", added=missing)
        return existing

    def build_row(
        self,
        headers: Sequence[str],
        answers_by_field: Mapping[str, str],
        folder_url: Optional[str],
        submitted_on: Optional[date] = None,
    ) -> List[str]:
        values: Dict[str, str] = {
            DATE_COLUMN: (submitted_on or date.today()).isoformat(),
            DRIVE_LINK_COLUMN: folder_url or "",
            **answers_by_field,
        }
        return [values.get(header, "") for header in headers]

    def _append_sync(self, answers_by_field: Mapping[str, str], folder_url: Optional[str]) -> None:
        worksheet = self._open_worksheet()
        headers = self._ensure_headers(worksheet)
        row = self.build_row(headers, answers_by_field, folder_url)
        worksheet.append_row(row, value_input_option="USER_ENTERED")

    async def append_project_row(
        self,
        answers_by_field: Mapping[str, str],
        folder_url: Optional[str] = None,
    ) -> None:
        """Append the submission row.

        Each HTTP request is bounded by the client timeout. The worker thread
        is never abandoned, so a reported failure means no row was written by
        this call.

        Raises:
            SinkFatalError: on any API, auth, network or timeout failure.
        """
        worker = asyncio.ensure_future(asyncio.to_thread(self._append_sync, answers_by_field, folder_url))
        try:
            try:
                await asyncio.wait_for(asyncio.shield(worker), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning("Google Sheets append is slow, waiting for it to finish", timeout=self.timeout)
                await worker
        except requests.exceptions.Timeout as exc:
            self._worksheet = None
            logger.error("Google Sheets append timed out", timeout=self.timeout)
            raise SinkFatalError(f"Google Sheets did not respond within {self.timeout:g}s") from exc
        except (GSpreadException, GoogleAuthError, OSError, ValueError) as exc:
            # Drop the cached handle so the next submission reopens the sheet.
            self._worksheet = None
            logger.error("Google Sheets append failed", error=str(exc), exc_info=True)
            raise SinkFatalError(f"Google Sheets error: {exc}") from exc

        logger.info("Project row appended", spreadsheet_id=self.spreadsheet_id)
