"""
Shared pytest fixtures for docagg tests.

Provides sample collections (authors/books, orders, users) and isolates
every test from the developer's docagg.json and DOCAGG_* environment.
"""

import logging

import pytest

from docagg.services.config_loader import ConfigLoader, reset_config_loader


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """
    Point configuration at an empty temporary project.

    Runs automatically so that a docagg.json in the working directory or
    DOCAGG_* variables in the shell never change test outcomes.
    """
    for env_var in ConfigLoader.CONFIG_KEY_TO_ENV.values():
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("DOCAGG_PROJECT_ROOT", str(tmp_path))
    monkeypatch.setenv("DOCAGG_DEBUG_LOG", "")
    reset_config_loader()

    yield tmp_path

    reset_config_loader()
    logger = logging.getLogger("docagg")
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            handler.close()
            logger.removeHandler(handler)
    logger.propagate = True


@pytest.fixture
def authors():
    return [
        {"name": "A", "email": "a@x"},
        {"name": "B", "email": "b@x"},
    ]


@pytest.fixture
def books():
    return [
        {"authorEmail": "a@x", "title": "T1"},
    ]


@pytest.fixture
def authors_pipeline():
    """Join authors to books, keep authors with books, derive summary fields."""
    return [
        {"$lookup": {"from": "books", "localField": "email",
                     "foreignField": "authorEmail", "as": "books"}},
        {"$match": {"books": {"$ne": []}}},
        {"$project": {
            "name": 1,
            "first_book": {"$ifNull": [{"$arrayElemAt": ["$books", 0]}, "No Books"]},
            "total_books": {"$size": "$books"},
        }},
    ]


@pytest.fixture
def orders():
    return [
        {"orderId": 1, "items": ["laptop", "mouse"]},
        {"orderId": 2, "items": ["laptop"]},
        {"orderId": 3, "items": []},
        {"orderId": 4, "items": ["mouse", "mouse", "keyboard"]},
    ]


@pytest.fixture
def users():
    return [
        {"id": 1, "name": "Ada", "managerId": None},
        {"id": 2, "name": "Grace", "managerId": 1},
        {"id": 3, "name": "Linus", "managerId": 1},
        {"id": 4, "name": "Ken", "managerId": 2},
    ]
