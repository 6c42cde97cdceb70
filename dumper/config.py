from __future__ import annotations

APP_NAME = "Resource Dumper"
APP_VERSION = "0.3.0"

DEFAULT_MAX_DEPTH = 10

RESOURCES_DIRNAME = "resources"
REPORT_FILENAME = "dump-report.json"
HTML_REPORT_FILENAME = "dump-report.html"
