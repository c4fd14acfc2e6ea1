# ==============================================================================
# app/importer/resolver.py
# ------------------------------------------------------------------------------
# Find-or-create of dimension rows (Center, Program) by their unique name.
# ==============================================================================

import logging
from sqlalchemy.exc import IntegrityError

from app import db
from app.models import Center, Program


def _find(model, name):
    return model.query.filter_by(name=name).first()


def resolve_dimension(model, name):
    """
    Returns the `model` row called `name`, creating it if needed.

    The insert runs in a SAVEPOINT. When a concurrent import wins the race
    the unique constraint on `name` fires, only the savepoint is rolled
    back, and the row the other import created is returned instead.

    Args:
        model (db.Model): Center or Program.
        name (str): Natural key; surrounding whitespace is ignored.

    Returns:
        db.Model: The existing or newly created row.

    Raises:
        ValueError: If the name is empty.
    """
    name = (name or '').strip()
    if not name:
        raise ValueError(f"{model.__name__} name must not be empty")

    instance = _find(model, name)
    if instance is not None:
        return instance

    try:
        with db.session.begin_nested():
            instance = model(name=name)
            db.session.add(instance)
            db.session.flush()
        logging.info(f"Created {model.__name__} '{name}' (id={instance.id}).")
    except IntegrityError:
        logging.info(f"{model.__name__} '{name}' was created concurrently; using the existing row.")
        instance = model.query.filter_by(name=name).one()
    return instance


def resolve_center(name):
    return resolve_dimension(Center, name)


def resolve_program(name):
    return resolve_dimension(Program, name)
