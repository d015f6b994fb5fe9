"""Utility functions for CLI output."""

from common.types import UploadStatus, UploadTask
from cli.constants import GREEN, RED, RESET


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def format_upload_task(task: UploadTask) -> str:
    """One status line for an upload, e.g. ``[upload-ab12] report.pdf 1.00 MiB 42%``."""
    line = f"[{task.task_id}] {task.name} {format_file_size(task.size)} "
    if task.status is UploadStatus.ERROR:
        return line + f"{RED}failed: {task.error}{RESET}"
    if task.status is UploadStatus.COMPLETED:
        line += f"{GREEN}done{RESET}"
        if task.is_duplicate:
            line += " (duplicate)"
        if task.relocation_error:
            line += f" {RED}{task.relocation_error}{RESET}"
        return line
    return line + f"{GREEN}{task.progress}%{RESET}"
