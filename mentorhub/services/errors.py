import logging
import traceback

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ErrorLog

logger = logging.getLogger(__name__)


def log_error(user_id, action, message, stack_trace=None, commit=True):
    """Persist a row to error_logs; never raises."""
    try:
        db.session.add(ErrorLog(user_id=user_id, action=action,
                                error_message=str(message), stack_trace=stack_trace))
        if commit:
            db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to write error log for action %s", action)


def log_exception(user_id, action, exc):
    log_error(user_id, action, str(exc) or exc.__class__.__name__,
              "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))


def log_activity(user_id, action, message):
    # admin audit lines share the error log table
    log_error(user_id, action, message, stack_trace="", commit=False)
