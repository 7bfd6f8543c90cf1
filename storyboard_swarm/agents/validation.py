"""Validation Agent for uploaded documents

This module implements the Validation Agent which verifies a job submission
before any gateway call is made: the document and owner id must be present,
and the document must be a readable, unencrypted PDF within the size bound.
"""

import asyncio
import logging
from typing import Optional, Tuple, Union

import fitz  # PyMuPDF

from storyboard_swarm.agents.base import Agent, AgentExecutionError, AgentInput, AgentOutput, RetryPolicy

logger = logging.getLogger(__name__)


def inspect_pdf(data: bytes) -> Tuple[bool, int]:
    """Open a PDF and return whether it is encrypted and its page count.

    Raises:
        RuntimeError, ValueError: If PyMuPDF cannot parse the document
    """
    with fitz.open(stream=data, filetype="pdf") as document:
        if document.needs_pass:
            return True, 0
        return False, document.page_count


class UploadInput(AgentInput):
    """A job submission as received from the client

    Attributes:
        document_bytes: Raw uploaded bytes
        document_name: Original file name
        owner_id: Owning user id
        project_id: Optional project id
    """

    def __init__(
        self,
        document_bytes: Optional[bytes],
        document_name: Optional[str],
        owner_id: Optional[str],
        project_id: Optional[str] = None
    ):
        self.document_bytes = document_bytes
        self.document_name = document_name
        self.owner_id = owner_id
        self.project_id = project_id


class ValidatedUpload(AgentOutput):
    """Output when every check passes

    Attributes:
        page_count: Page count reported by the local PDF parser
        size_bytes: Document size
    """

    def __init__(self, page_count: int, size_bytes: int):
        self.page_count = page_count
        self.size_bytes = size_bytes


class UploadValidationError(AgentOutput):
    """Error object returned when validation fails

    Attributes:
        error_code: Machine-readable error code
        reason: Human-readable failure reason, echoing the violated constraint
    """

    def __init__(self, error_code: str, reason: str):
        self.error_code = error_code
        self.reason = reason

    def __repr__(self):
        return f"UploadValidationError(error_code='{self.error_code}', reason='{self.reason}')"


class ValidationAgent(Agent):
    """Agent responsible for verifying a job submission

    The ValidationAgent performs the following checks, in order:
    1. Document is present and non-empty
    2. Owner id is present
    3. Document starts with the %PDF- magic bytes
    4. Document size is at most 50MB
    5. PyMuPDF can open the document and it has at least one page
    6. Document is not password protected

    If all checks pass, returns ValidatedUpload.
    If any check fails, returns an UploadValidationError with the failure reason.
    """

    MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB

    PDF_MAGIC_BYTES = b'%PDF-'

    async def execute(self, input_data: UploadInput) -> Union[ValidatedUpload, UploadValidationError]:
        """Execute validation checks on the submission

        Args:
            input_data: UploadInput from the HTTP layer

        Returns:
            ValidatedUpload on success OR UploadValidationError on failure

        Raises:
            AgentExecutionError: If the input is not an UploadInput
        """
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                error_code="INVALID_INPUT",
                message="Input must be an UploadInput object",
                context={"input_type": type(input_data).__name__}
            )

        data = input_data.document_bytes

        # Check 1-2: Required fields
        if not data:
            return UploadValidationError("MISSING_DOCUMENT", "No PDF file provided")

        if not input_data.owner_id or not input_data.owner_id.strip():
            return UploadValidationError("MISSING_OWNER_ID", "No user_id provided")

        # Check 3: Magic bytes
        if not data.startswith(self.PDF_MAGIC_BYTES):
            return UploadValidationError(
                "INVALID_MIME_TYPE",
                f"File does not have PDF magic bytes (%PDF-): {input_data.document_name}"
            )

        # Check 4: Size bound
        if len(data) > self.MAX_FILE_SIZE:
            return UploadValidationError(
                "INVALID_FILE_SIZE",
                f"File size {len(data)} bytes exceeds maximum {self.MAX_FILE_SIZE} bytes"
            )

        # Check 5-6: Structure and encryption, parsed off the event loop
        try:
            encrypted, page_count = await asyncio.to_thread(inspect_pdf, data)
        except (RuntimeError, ValueError) as e:
            return UploadValidationError(
                "CORRUPTED_PDF",
                f"PDF structure is corrupted: {e}"
            )

        if encrypted:
            return UploadValidationError(
                "ENCRYPTED_PDF",
                f"PDF is password protected: {input_data.document_name}"
            )

        if page_count < 1:
            return UploadValidationError("CORRUPTED_PDF", "PDF has no pages")

        logger.info(f"Validated {input_data.document_name}: {page_count} pages, {len(data)} bytes")
        return ValidatedUpload(page_count=page_count, size_bytes=len(data))

    def validate_input(self, input_data: AgentInput) -> bool:
        return isinstance(input_data, UploadInput)

    def get_retry_policy(self) -> RetryPolicy:
        """Validation failures are deterministic, so no retry is performed."""
        return RetryPolicy(max_attempts=1)
