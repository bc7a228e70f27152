"""Log filter that masks phone numbers and emails."""

import logging
import re


class PIIFilter(logging.Filter):
    """Masks PII (emails, phone numbers) in log messages."""

    EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+")
    PHONE_PATTERN = re.compile(
        r"(?<![\w-])(?:\+\d{7,15}|\d{10,15}|\d{3}[-.\s]\d{3}[-.\s]\d{4})(?![\w-])"
    )

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            msg = record.msg
            if "@" in msg:
                msg = self.EMAIL_PATTERN.sub("[EMAIL]", msg)
            if any(c.isdigit() for c in msg):
                msg = self.PHONE_PATTERN.sub("[PHONE]", msg)
            record.msg = msg
        if isinstance(record.args, tuple):
            record.args = tuple(self._mask_arg(a) for a in record.args)
        return True

    def _mask_arg(self, value: object) -> object:
        if not isinstance(value, str):
            return value
        masked = self.EMAIL_PATTERN.sub("[EMAIL]", value)
        return self.PHONE_PATTERN.sub("[PHONE]", masked)
