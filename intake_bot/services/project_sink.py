"""Project sink: where finished surveys are persisted."""

from __future__ import annotations

from typing import Mapping, Optional

import structlog

from intake_bot.config import Settings
from intake_bot.exceptions import SinkFatalError
from intake_bot.services.drive_service import DriveService, ProjectFolder
from intake_bot.services.sheets_service import SheetsService, load_service_account_info
from intake_bot.survey.questions import QuestionSet

logger = structlog.get_logger(__name__)


class ProjectSink:
    """Facade over the Sheets row and the optional Drive folder."""

    def __init__(self, sheets: SheetsService, drive: Optional[DriveService] = None) -> None:
        self.sheets = sheets
        self.drive = drive

    @property
    def supports_folders(self) -> bool:
        return self.drive is not None

    async def create_project_folder(
        self,
        client_name: str,
        room_type: str,
        location: Optional[str] = None,
    ) -> ProjectFolder:
        if self.drive is None:
            raise SinkFatalError("Google Drive is not configured")
        return await self.drive.create_project_folder(client_name, room_type, location)

    async def append_project_row(
        self,
        answers_by_field: Mapping[str, str],
        folder_url: Optional[str] = None,
    ) -> None:
        await self.sheets.append_project_row(answers_by_field, folder_url)

    async def create_supplementary_file(self, folder_id: str, filename: str, content: str) -> str:
        if self.drive is None:
            raise SinkFatalError("Google Drive is not configured")
        return await self.drive.create_supplementary_file(folder_id, filename, content)


def build_project_sink(settings: Settings, questions: QuestionSet) -> ProjectSink:
    """Create the sink from application settings.

    Raises:
        ValueError: when the service account key is missing or malformed.
    """
    account_info = load_service_account_info(settings.google_service_account_key)

    sheets = SheetsService(
        settings.google_sheet_id,
        questions.fields,
        service_account_info=account_info,
        worksheet_title=settings.google_sheet_title,
        timeout=settings.sheets_timeout,
    )

    drive = None
    if settings.drive_enabled:
        drive = DriveService(
            settings.google_drive_parent_folder_id,
            service_account_info=account_info,
            link_role=settings.drive_link_role,
            timeout=settings.drive_timeout,
        )
    else:
        logger.info("Google Drive folder creation disabled")

    return ProjectSink(sheets, drive)
