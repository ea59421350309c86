import logging
import sys

# Attributes every LogRecord has; anything else came in through extra=
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class KVFormatter(logging.Formatter):
    def format(self, record):
        base = {
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        base.update({k: v for k, v in vars(record).items() if k not in _RESERVED})
        line = " | ".join(f"{k}={v}" for k, v in base.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(KVFormatter())


def setup_logging(level=logging.INFO):
    logging.root.handlers.clear()
    logging.root.setLevel(level)
    logging.root.addHandler(_handler)
    for noisy in ["uvicorn", "uvicorn.error", "uvicorn.access", "aiohttp", "onnxruntime"]:
        logging.getLogger(noisy).setLevel(logging.WARNING)
