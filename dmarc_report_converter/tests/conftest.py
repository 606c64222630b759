import logging

from dmarc_report_converter.logging import configure_logging

# Configured at import so that handlers installed by caplog during test setup
# are not replaced afterwards.
configure_logging(log_level=logging.DEBUG)
