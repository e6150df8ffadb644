"""
Logging configuration for the harvest keeper.

Implements structured logging with:
- Console output plus daily rotating log files
- Gzip compression of rotated files older than a week
- Separate error and activity logs
- Activity logging of harvests, conversions, liquidations and operator actions
"""

import sys
import gzip
import shutil
import logging
from pathlib import Path
from datetime import datetime, timedelta
from typing import Optional
from logging.handlers import TimedRotatingFileHandler


class CompressingTimedRotatingFileHandler(TimedRotatingFileHandler):
    """
    TimedRotatingFileHandler that gzips rotated files older than
    compress_after_days.
    """

    def __init__(self, *args, compress_after_days: int = 7, **kwargs):
        super().__init__(*args, **kwargs)
        self.compress_after_days = compress_after_days

    def doRollover(self):
        super().doRollover()
        self._compress_old_logs()

    def _compress_old_logs(self):
        """Compress rotated siblings of the current log file past the cutoff."""
        if not self.baseFilename:
            return

        log_dir = Path(self.baseFilename).parent
        log_basename = Path(self.baseFilename).name
        cutoff_date = datetime.now() - timedelta(days=self.compress_after_days)

        for log_file in log_dir.glob(f"{log_basename}.*"):
            if log_file.suffix == '.gz':
                continue

            try:
                file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
                if file_mtime < cutoff_date:
                    self._compress_file(log_file)
            except OSError as e:
                # The logging system itself is what failed, stderr is all that is left
                print(f"Error compressing {log_file}: {e}", file=sys.stderr)

    def _compress_file(self, file_path: Path):
        compressed_path = file_path.with_suffix(file_path.suffix + '.gz')

        try:
            with open(file_path, 'rb') as f_in:
                with gzip.open(compressed_path, 'wb') as f_out:
                    shutil.copyfileobj(f_in, f_out)
            file_path.unlink()
        except OSError as e:
            print(f"Failed to compress {file_path}: {e}", file=sys.stderr)
            if compressed_path.exists():
                compressed_path.unlink()


class StructuredFormatter(logging.Formatter):
    """
    Formatter that adds a component name and appends extra context.

    Records logged through log_with_context() carry an extra_context dict
    which is rendered as " | key=value | key=value".
    """

    def format(self, record: logging.LogRecord) -> str:
        component = record.name.split('.')[-1] if '.' in record.name else record.name
        record.component = component

        formatted = super().format(record)

        if hasattr(record, 'extra_context'):
            context_str = ' | '.join(f"{k}={v}" for k, v in record.extra_context.items())
            formatted += f" | {context_str}"

        return formatted


def setup_logging(
    log_dir: str = "logs",
    log_level: str = "INFO",
    console_level: str = "INFO",
    enable_compression: bool = True,
    compress_after_days: int = 7,
    retention_days: int = 30,
) -> logging.Logger:
    """
    Set up logging for the keeper.

    Args:
        log_dir: Directory for log files
        log_level: File logging level (DEBUG, INFO, WARNING, ERROR)
        console_level: Console logging level
        enable_compression: Whether to compress old log files
        compress_after_days: Days after which to compress logs
        retention_days: Days to retain log files

    Returns:
        Configured root logger
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    detailed_formatter = StructuredFormatter(
        fmt='%(asctime)s | %(levelname)-8s | %(component)-15s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_formatter = StructuredFormatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, console_level.upper()))
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    log_file = log_path / "keeper.log"

    if enable_compression:
        file_handler = CompressingTimedRotatingFileHandler(
            filename=str(log_file),
            when='midnight',
            interval=1,
            backupCount=retention_days,
            compress_after_days=compress_after_days,
            encoding='utf-8',
        )
    else:
        file_handler = TimedRotatingFileHandler(
            filename=str(log_file),
            when='midnight',
            interval=1,
            backupCount=retention_days,
            encoding='utf-8',
        )

    file_handler.setLevel(getattr(logging, log_level.upper()))
    file_handler.setFormatter(detailed_formatter)
    file_handler.suffix = "%Y-%m-%d"
    root_logger.addHandler(file_handler)

    # ERROR and CRITICAL only
    error_handler = TimedRotatingFileHandler(
        filename=str(log_path / "keeper_errors.log"),
        when='midnight',
        interval=1,
        backupCount=retention_days,
        encoding='utf-8',
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(detailed_formatter)
    error_handler.suffix = "%Y-%m-%d"
    root_logger.addHandler(error_handler)

    activity_handler = TimedRotatingFileHandler(
        filename=str(log_path / "keeper_activity.log"),
        when='midnight',
        interval=1,
        backupCount=retention_days,
        encoding='utf-8',
    )
    activity_handler.setLevel(logging.INFO)
    activity_handler.setFormatter(detailed_formatter)
    activity_handler.suffix = "%Y-%m-%d"
    activity_handler.addFilter(logging.Filter('keeper.activity'))
    root_logger.addHandler(activity_handler)

    root_logger.info("=" * 80)
    root_logger.info("Harvest keeper logging initialized")
    root_logger.info(f"Log directory: {log_path.absolute()}")
    root_logger.info(f"Log level: {log_level}")
    root_logger.info(f"Console level: {console_level}")
    root_logger.info(f"Compression: {'enabled' if enable_compression else 'disabled'} (after {compress_after_days} days)")
    root_logger.info(f"Retention: {retention_days} days")
    root_logger.info("=" * 80)

    return root_logger


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context
):
    """
    Log a message with additional context.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, logging.ERROR, etc.)
        message: Log message
        **context: Additional context key-value pairs
    """
    extra = {'extra_context': context} if context else {}
    logger.log(level, message, extra=extra)


class ActivityLogger:
    """
    Logger for strategy activity.

    Everything goes to the 'keeper.activity' logger so setup_logging() can
    route it to its own file.
    """

    def __init__(self):
        self.logger = logging.getLogger('keeper.activity')

    def log_harvest(
        self,
        strategy_name: str,
        profit: int,
        loss: int,
        debt_payment: int,
        debt_outstanding: int,
    ):
        """Log a completed prepare_return / harvest report."""
        log_with_context(
            self.logger,
            logging.INFO,
            "Harvest reported",
            strategy=strategy_name,
            profit=profit,
            loss=loss,
            debt_payment=debt_payment,
            debt_outstanding=debt_outstanding,
        )

    def log_conversion(
        self,
        route: str,
        amount_in: int,
        amount_out: int,
        min_out: int,
    ):
        """Log one executed conversion leg."""
        log_with_context(
            self.logger,
            logging.INFO,
            f"Converted via {route}",
            route=route,
            amount_in=amount_in,
            amount_out=amount_out,
            min_out=min_out,
        )

    def log_liquidation(self, amount_needed: int, liquidated: int, loss: int):
        """Log a liquidation; shortfalls are logged at WARNING."""
        level = logging.WARNING if loss > 0 else logging.INFO
        log_with_context(
            self.logger,
            level,
            "Liquidation completed" if loss == 0 else "Liquidation short of target",
            amount_needed=amount_needed,
            liquidated=liquidated,
            loss=loss,
        )

    def log_operator_action(self, action: str, caller: str, accepted: bool, **context):
        """Log an operator-surface call, accepted or rejected."""
        log_with_context(
            self.logger,
            logging.INFO if accepted else logging.WARNING,
            f"Operator action {action} {'accepted' if accepted else 'rejected'}",
            action=action,
            caller=caller,
            **context
        )

    def log_error(
        self,
        component: str,
        error_type: str,
        error_message: str,
        **context
    ):
        """Log an error with context."""
        context.update({
            'component': component,
            'error_type': error_type,
        })

        log_with_context(
            self.logger,
            logging.ERROR,
            error_message,
            **context
        )


_activity_logger: Optional[ActivityLogger] = None


def get_activity_logger() -> ActivityLogger:
    """Get the global activity logger instance."""
    global _activity_logger
    if _activity_logger is None:
        _activity_logger = ActivityLogger()
    return _activity_logger
