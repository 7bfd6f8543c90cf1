"""Run log for the storyboard swarm.

Every swarm job can append its events to ``pipeline.log`` inside its own run
directory, one JSON object per line, while mirroring a readable line to the
standard ``logging`` hierarchy.

Log Event Types:
- pipeline_start: A document job begins
- stage_start / stage_complete: A top-level stage (context, extraction,
  batch scheduling, persistence) begins or ends
- page_complete: A page worker finished with status success
- page_fallback: A page worker fell back; carries the captured error
- persistence_failure: The fact insert failed (non-fatal)
- pipeline_complete: The job finished with its statistics
- pipeline_error: The job aborted
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """Configure the root logger once for the service process."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("storyboard_swarm").setLevel(level)


def run_log_directory(base_directory: Union[str, Path], document_name: str) -> Path:
    """Directory for one run: ``{base}/{pdf_stem}/{timestamp}``."""
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    return Path(base_directory) / Path(document_name).stem / timestamp


class StructuredJSONLogger:
    """Writes one JSON line per swarm event to pipeline.log.

    Every line carries ``event`` and a UTC ``timestamp``; the remaining keys
    depend on the event, e.g.::

        {"event": "page_fallback", "timestamp": "...", "page": 3, "error_message": "..."}

    Without an output directory only the console mirror is active.
    """

    def __init__(self, output_directory: Optional[Union[str, Path]] = None):
        """
        Args:
            output_directory: Run directory for pipeline.log; created if missing
        """
        self.output_directory = output_directory
        self.log_file_path: Optional[Path] = None
        self.json_file_handle = None
        self.logger = logging.getLogger(__name__)

        if output_directory:
            run_directory = Path(output_directory)
            run_directory.mkdir(parents=True, exist_ok=True)
            self.log_file_path = run_directory / "pipeline.log"
            self.json_file_handle = self.log_file_path.open('a', encoding='utf-8')

    def _write_json_log(self, event: str, **fields: Any) -> Dict[str, Any]:
        log_entry = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        log_entry.update(fields)

        if self.json_file_handle:
            self.json_file_handle.write(json.dumps(log_entry, ensure_ascii=False) + '\n')
            self.json_file_handle.flush()
        return log_entry

    def log_pipeline_start(
        self,
        document_name: str,
        owner_id: str,
        config: Dict[str, Any]
    ) -> None:
        """Log job start.

        Args:
            document_name: Uploaded document name
            owner_id: Owning user id
            config: Pipeline tunables for this run
        """
        self._write_json_log(
            "pipeline_start",
            document_name=document_name,
            owner_id=owner_id,
            config=config
        )
        self.logger.info(f"Starting swarm for {document_name} (owner {owner_id})")

    def log_stage_start(self, stage: str, summary: str = "") -> None:
        self._write_json_log("stage_start", stage=stage, summary=summary)
        self.logger.info(f"Starting {stage}" + (f": {summary}" if summary else ""))

    def log_stage_complete(self, stage: str, duration_ms: float, summary: str = "") -> None:
        self._write_json_log(
            "stage_complete",
            stage=stage,
            duration_ms=round(duration_ms, 2),
            summary=summary
        )
        self.logger.info(f"Completed {stage} in {duration_ms:.2f}ms" + (f": {summary}" if summary else ""))

    def log_page_complete(self, page: int, concepts: int, facts: int) -> None:
        self._write_json_log("page_complete", page=page, concepts=concepts, facts=facts)
        self.logger.info(f"Page {page} completed: {concepts} concepts, {facts} facts")

    def log_page_fallback(self, page: int, error_message: str) -> None:
        """Log a page that fell back.

        Args:
            page: Page number
            error_message: Message of the exception that aborted the page
        """
        self._write_json_log("page_fallback", page=page, error_message=error_message)
        self.logger.error(f"Page {page} failed, using fallback: {error_message}")

    def log_persistence_failure(self, error_message: str, fact_count: int) -> None:
        self._write_json_log(
            "persistence_failure",
            error_message=error_message,
            fact_count=fact_count
        )
        self.logger.error(f"Failed to persist {fact_count} facts: {error_message}")

    def log_pipeline_complete(
        self,
        duration_seconds: float,
        statistics: Dict[str, Any]
    ) -> None:
        """Log job completion.

        Args:
            duration_seconds: Total job duration in seconds
            statistics: Page, fact and concept counts plus the focus score
        """
        self._write_json_log(
            "pipeline_complete",
            duration_seconds=round(duration_seconds, 2),
            statistics=statistics
        )
        self.logger.info(
            f"Swarm completed in {duration_seconds:.2f}s: "
            f"{statistics.get('pages_processed', 0)} pages succeeded, "
            f"{statistics.get('pages_failed', 0)} fell back"
        )

    def log_pipeline_error(
        self,
        error_type: str,
        error_message: str,
        stage: Optional[str] = None,
        error_code: Optional[str] = None
    ) -> None:
        """Log job-level error.

        Args:
            error_type: Type of error (exception class name)
            error_message: Error message
            stage: Optional stage where the error occurred
            error_code: Optional machine-readable code
        """
        fields: Dict[str, Any] = {
            "error_type": error_type,
            "error_message": error_message,
        }
        if stage:
            fields["stage"] = stage
        if error_code:
            fields["error_code"] = error_code

        self._write_json_log("pipeline_error", **fields)
        self.logger.error(f"Swarm error: {error_message}")

    def close(self) -> None:
        """Close the log file handle."""
        if self.json_file_handle:
            self.json_file_handle.close()
            self.json_file_handle = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
