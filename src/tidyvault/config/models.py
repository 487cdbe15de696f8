"""Configuration models describing tidyvault settings."""

from __future__ import annotations

import logging
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tidyvault.vault.paths import normalize_path

LOGGER = logging.getLogger(__name__)

DEFAULT_ATTACHMENT_FOLDER = "_Attachments"
DEFAULT_ATTACHMENT_EXTENSIONS = [
    "png", "jpg", "jpeg", "gif", "bmp", "svg", "webp", "ico",
    "mp3", "wav", "ogg", "flac", "m4a",
    "mp4", "webm", "mov", "avi", "mkv",
    "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
    "zip", "rar", "7z", "tar", "gz",
    "ttf", "otf", "woff", "woff2",
    "excalidraw",
]  # fmt: skip
DEFAULT_EXCLUDED_FOLDERS = [".obsidian", ".trash", ".git", "node_modules", ".tidyvault"]
DEFAULT_CUSTOM_PATTERN = "{{type}}/{{year}}"


def _split_list(value: Any) -> Any:
    """Accept comma-separated strings wherever a list of strings is expected."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


def _normalize_extensions(values: List[str]) -> List[str]:
    cleaned = [value.strip().lstrip(".").lower() for value in values]
    return [value for value in dict.fromkeys(cleaned) if value]


def _normalize_folders(values: List[str]) -> List[str]:
    cleaned = [normalize_path(value) for value in values]
    return [value for value in dict.fromkeys(cleaned) if value]


def _folder_or_default(value: Any, default: str, field: str) -> str:
    raw = value.strip() if isinstance(value, str) else ""
    normalized = normalize_path(raw)
    if not normalized or ".." in normalized.split("/") or raw.startswith(("/", "\\")):
        if raw:
            LOGGER.warning("Invalid %s %r; falling back to %r.", field, raw, default)
        return default
    return normalized


class TidyVaultBaseModel(BaseModel):
    """Shared configuration for tidyvault Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class OrganizerSettings(TidyVaultBaseModel):
    """Rules governing where attachments are moved.

    Attributes:
        attachment_folder: Vault-relative destination root for attachments.
        attachment_extensions: Lower-cased extensions treated as attachments.
        excluded_folders: Folders whose contents are never touched.
        organize_by_note: Place attachments below a folder named after the referring note.
        organize_mode: Layout used below the attachment folder.
        custom_pattern: Template used when ``organize_mode`` is ``custom``.
        reorganize_inside_attachment_folder: Also re-plan files already in the attachment folder.
        ignore_all_attachment_subfolders: Leave every attachment subfolder untouched.
        ignored_attachment_subfolders: Attachment subfolders left untouched.
        interval_minutes: Minutes between automatic runs in watch mode (0 disables).
        organize_on_load: Organize when watch mode starts.
        has_confirmed_first_run: Whether the user confirmed a first organize run.
        merge_ignore_files: Seed ``excluded_folders`` from .gitignore/.stignore.
    """

    attachment_folder: str = DEFAULT_ATTACHMENT_FOLDER
    attachment_extensions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ATTACHMENT_EXTENSIONS)
    )
    excluded_folders: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_FOLDERS))
    organize_by_note: bool = False
    organize_mode: Literal["flat", "date", "type", "custom"] = "flat"
    custom_pattern: str = DEFAULT_CUSTOM_PATTERN
    reorganize_inside_attachment_folder: bool = False
    ignore_all_attachment_subfolders: bool = True
    ignored_attachment_subfolders: List[str] = Field(default_factory=list)
    interval_minutes: int = Field(default=30, ge=0)
    organize_on_load: bool = True
    has_confirmed_first_run: bool = False
    merge_ignore_files: bool = True

    @field_validator(
        "attachment_extensions",
        "excluded_folders",
        "ignored_attachment_subfolders",
        mode="before",
    )
    @classmethod
    def _split_comma_lists(cls, value: Any) -> Any:
        return _split_list(value)

    @field_validator("attachment_extensions")
    @classmethod
    def _clean_extensions(cls, value: List[str]) -> List[str]:
        return _normalize_extensions(value)

    @field_validator("excluded_folders", "ignored_attachment_subfolders")
    @classmethod
    def _clean_folders(cls, value: List[str]) -> List[str]:
        return _normalize_folders(value)

    @field_validator("attachment_folder", mode="before")
    @classmethod
    def _clean_attachment_folder(cls, value: Any) -> str:
        return _folder_or_default(value, DEFAULT_ATTACHMENT_FOLDER, "attachment folder")

    @field_validator("custom_pattern", mode="before")
    @classmethod
    def _clean_custom_pattern(cls, value: Any) -> str:
        return _folder_or_default(value, DEFAULT_CUSTOM_PATTERN, "custom pattern")


class UnlinkedSettings(TidyVaultBaseModel):
    """Settings for the unlinked attachment finder and purge.

    Attributes:
        match_mode: ``lenient`` also treats basename substrings of references as links.
        use_trash: Move purged files into the vault ``.trash`` folder instead of deleting.
        delete_empty_folders: Remove folders emptied by a purge.
        document_extensions: Extensions of documents scanned for references.
        max_document_bytes: Documents above this size are skipped.
    """

    match_mode: Literal["lenient", "strict"] = "lenient"
    use_trash: bool = True
    delete_empty_folders: bool = True
    document_extensions: List[str] = Field(default_factory=lambda: ["md", "canvas"])
    max_document_bytes: int = Field(default=5 * 1024 * 1024, gt=0)

    @field_validator("document_extensions", mode="before")
    @classmethod
    def _split_comma_lists(cls, value: Any) -> Any:
        return _split_list(value)

    @field_validator("document_extensions")
    @classmethod
    def _clean_extensions(cls, value: List[str]) -> List[str]:
        return _normalize_extensions(value)


class OcrSettings(TidyVaultBaseModel):
    """OCR pipeline configuration.

    Attributes:
        api_key: Credential for the generative-AI endpoint (``GEMINI_API_KEY`` fallback).
        model: Model name used for transcription.
        endpoint: Base URL of the generative-AI API.
        prompt: Instruction sent alongside each file.
        watch_folder: Vault folder scanned for files to transcribe.
        output_folder: Vault folder receiving transcription notes.
        extensions: File extensions eligible for OCR.
        batch_size: Files processed between batch pauses.
        batch_delay_seconds: Pause between batches.
        max_attempts: Attempts per file when rate limited.
        base_delay_seconds: Initial backoff delay.
        max_delay_seconds: Upper bound for a single backoff delay.
        timeout_seconds: HTTP timeout per request.
        auto_process: Transcribe new files in the watch folder during ``watch``.
    """

    api_key: Optional[str] = None
    model: str = "gemini-2.0-flash"
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta"
    prompt: str = (
        "Transcribe all text in this file as Markdown. Preserve headings, lists and "
        "tables. Return only the transcription."
    )
    watch_folder: str = "OCR Inbox"
    output_folder: str = "OCR"
    extensions: List[str] = Field(default_factory=lambda: ["pdf", "png", "jpg", "jpeg", "webp"])
    batch_size: int = Field(default=5, ge=1)
    batch_delay_seconds: float = Field(default=2.0, ge=0)
    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=2.0, ge=0)
    max_delay_seconds: float = Field(default=60.0, ge=0)
    timeout_seconds: float = Field(default=120.0, gt=0)
    auto_process: bool = False

    @field_validator("extensions", mode="before")
    @classmethod
    def _split_comma_lists(cls, value: Any) -> Any:
        return _split_list(value)

    @field_validator("extensions")
    @classmethod
    def _clean_extensions(cls, value: List[str]) -> List[str]:
        return _normalize_extensions(value)

    @field_validator("watch_folder", mode="before")
    @classmethod
    def _clean_watch_folder(cls, value: Any) -> str:
        return _folder_or_default(value, "OCR Inbox", "OCR watch folder")

    @field_validator("output_folder", mode="before")
    @classmethod
    def _clean_output_folder(cls, value: Any) -> str:
        return _folder_or_default(value, "OCR", "OCR output folder")


class LoggingSettings(TidyVaultBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 3


class CLIOptions(TidyVaultBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class TidyVaultConfig(TidyVaultBaseModel):
    """Top-level configuration struct for tidyvault.

    Attributes:
        organizer: Attachment relocation rules.
        unlinked: Unlinked attachment finder settings.
        ocr: OCR pipeline settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    organizer: OrganizerSettings = Field(default_factory=OrganizerSettings)
    unlinked: UnlinkedSettings = Field(default_factory=UnlinkedSettings)
    ocr: OcrSettings = Field(default_factory=OcrSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "DEFAULT_ATTACHMENT_FOLDER",
    "DEFAULT_ATTACHMENT_EXTENSIONS",
    "DEFAULT_EXCLUDED_FOLDERS",
    "TidyVaultBaseModel",
    "OrganizerSettings",
    "UnlinkedSettings",
    "OcrSettings",
    "LoggingSettings",
    "CLIOptions",
    "TidyVaultConfig",
]
