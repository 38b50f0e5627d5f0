from contextlib import contextmanager

from flask import current_app

from blockcms.extensions import db


@contextmanager
def transactional():
    """
    One unit of work: commit when the block exits cleanly, otherwise roll
    back everything flushed inside it and re-raise.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.info("Rolled back transaction: %s", exc)
        raise
