"""Shared pytest fixtures.

Every test runs in its own temporary working directory, so the default
data directory (data/store) and config file (data/config) resolve inside
tmp_path.
"""

import copy

import pytest

from unitize.config.app_config import clear_config_cache
from unitize.core.progress import create_user
from unitize.db.file_store import write_json

SAMPLE_CATALOG = {
    "ap_courses": [
        {
            "id": "apcalc",
            "name": "AP Calculus AB",
            "description": "Limits, derivatives and integrals",
            "units": [
                {
                    "id": "unit1",
                    "name": "Limits and Continuity",
                    "topics": [
                        {
                            "id": "topic1",
                            "name": "Defining Limits",
                            "questions": [
                                {
                                    "id": "q1",
                                    "question": "What is the limit of 1/x as x grows without bound?",
                                    "options": ["0", "1", "Infinity", "Undefined"],
                                    "answer": 0,
                                    "explanation": "1/x approaches zero.",
                                },
                                {
                                    "id": "q2",
                                    "question": "Which notation describes a one-sided limit?",
                                    "options": ["lim x->a+", "f'(a)", "dy/dx", "sum"],
                                    "answer": 0,
                                    "explanation": "The plus sign marks approach from the right.",
                                },
                                {
                                    "id": "q3",
                                    "question": "Is a removable discontinuity continuous?",
                                    "options": ["Yes", "No"],
                                    "answer": 1,
                                    "explanation": "The function has a hole at that point.",
                                },
                            ],
                        },
                        {
                            "id": "topic2",
                            "name": "Continuity",
                            "questions": [
                                {
                                    "id": "q4",
                                    "question": "Polynomials are continuous on which domain?",
                                    "options": ["All reals", "Positive reals", "Integers"],
                                    "answer": 0,
                                    "explanation": "Polynomials have no breaks.",
                                }
                            ],
                        },
                    ],
                },
                {
                    "id": "unit2",
                    "name": "Derivatives",
                    "topics": [
                        {
                            "id": "topic3",
                            "name": "Power Rule",
                            "questions": [
                                {
                                    "id": "q5",
                                    "question": "What is the derivative of x^2?",
                                    "options": ["x", "2x", "x^3/3"],
                                    "answer": 1,
                                    "explanation": "Bring the exponent down.",
                                },
                                {
                                    "id": "q6",
                                    "question": "What is the derivative of a constant?",
                                    "options": ["0", "1", "The constant"],
                                    "answer": 0,
                                    "explanation": "Constants do not change.",
                                },
                            ],
                        }
                    ],
                },
                {"id": "unit3", "name": "Integrals", "topics": []},
            ],
        },
        {
            "id": "apbio",
            "name": "AP Biology",
            "description": "",
            "units": [
                {
                    "id": "unit1",
                    "name": "Chemistry of Life",
                    "topics": [
                        {
                            "id": "water",
                            "name": "Water",
                            "questions": [
                                {
                                    "id": "b1",
                                    "question": "Why is water polar?",
                                    "options": ["Uneven electron sharing", "Ionic bonds"],
                                    "answer": 0,
                                    "explanation": "Oxygen pulls electrons harder than hydrogen.",
                                }
                            ],
                        }
                    ],
                }
            ],
        },
    ]
}


@pytest.fixture(autouse=True)
def isolated_workdir(tmp_path, monkeypatch):
    """Run each test from tmp_path with a fresh config cache."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("UNITIZE_DATA_DIR", raising=False)
    clear_config_cache()
    yield tmp_path
    clear_config_cache()


@pytest.fixture
def data_dir(tmp_path):
    """The configured data directory for the test."""
    return tmp_path / "data" / "store"


@pytest.fixture
def sample_catalog(data_dir):
    """Write the sample course catalog to units.json."""
    catalog = copy.deepcopy(SAMPLE_CATALOG)
    write_json(data_dir / "units.json", catalog)
    return catalog


@pytest.fixture
def sample_user(data_dir):
    """Create a user with no progress."""
    result = create_user("Ana", "ana@example.com", data_dir)
    assert result.success
    return result.data
