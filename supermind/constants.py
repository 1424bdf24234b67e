"""Global constants for the SuperMind report pipeline."""

# ---------------------------------------------------------------------------
# Upstream (Langflow) defaults
# ---------------------------------------------------------------------------
DEFAULT_GATEWAY_URL: str = "http://127.0.0.1:3000"
DEFAULT_TIMEOUT_S: int = 60

# Conversational mode markers sent with every flow run.
FLOW_INPUT_TYPE: str = "chat"
FLOW_OUTPUT_TYPE: str = "chat"

# ---------------------------------------------------------------------------
# User-facing messages
# ---------------------------------------------------------------------------
MSG_INVALID_QUERY: str = "Please enter a valid message."
MSG_TIMEOUT: str = "The request timed out. Please try again."
MSG_CONNECTIVITY: str = (
    "Could not connect to the report service. "
    "Please check your connection and try again."
)
MSG_SERVER_ERROR_PREFIX: str = "Server error: "
MSG_SERVER_ERROR_GENERIC: str = (
    "The report service returned an error. Please try again later."
)
MSG_UNREACHABLE: str = "Something went wrong, please try again."
MSG_SESSION_BUSY: str = "A request is already in progress for this session."
MSG_PENDING: str = "AI is thinking..."
MSG_SESSION_NOT_FOUND: str = "This conversation no longer exists. Please start a new chat."

# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
SESSION_TITLE_MAX_CHARS: int = 80
SESSION_TITLE_DEFAULT: str = "New chat"

# ---------------------------------------------------------------------------
# PDF page geometry (points, top-down cursor)
# ---------------------------------------------------------------------------
PDF_PAGE_WIDTH: float = 595.27   # A4
PDF_PAGE_HEIGHT: float = 841.89
PDF_MARGIN_LEFT: float = 40.0
PDF_MARGIN_TOP: float = 50.0
PDF_PAGE_HEIGHT_LIMIT: float = 780.0
PDF_CONTENT_WIDTH: float = PDF_PAGE_WIDTH - 2 * PDF_MARGIN_LEFT

PDF_FONT: str = "Helvetica"
PDF_FONT_BOLD: str = "Helvetica-Bold"
PDF_FONT_SIZE: int = 10
PDF_SUBTITLE_SIZE: int = 12
PDF_HEADING_SIZE: int = 14
PDF_LINE_HEIGHT: float = 14.0
PDF_BULLET_INDENT: float = 15.0
PDF_TABLE_CELL_WIDTH: float = 110.0
PDF_TABLE_ROW_HEIGHT: float = 18.0
PDF_CHART_HEIGHT: float = 300.0

# ---------------------------------------------------------------------------
# Output artifacts
# ---------------------------------------------------------------------------
MIME_TYPES: dict[str, str] = {
    "PDF": "application/pdf",
    "DOCX": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "HTML": "text/html",
    "MARKDOWN": "text/markdown",
}

FILE_EXTENSIONS: dict[str, str] = {
    "PDF": "pdf",
    "DOCX": "docx",
    "HTML": "html",
    "MARKDOWN": "md",
}

REPORT_TITLE: str = "SuperMind Report"
