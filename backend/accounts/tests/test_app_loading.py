import os
import subprocess
import sys
from pathlib import Path

import pytest
from django.contrib.auth import get_user_model
from rest_framework.views import APIView

from accounts.authentication import WorkbenchSessionAuthentication
from projects.models import Project

BACKEND_DIR = Path(__file__).resolve().parents[2]


def test_default_authenticator_is_the_session_authenticator():
    authenticators = APIView().get_authenticators()

    assert [type(a) for a in authenticators] == [WorkbenchSessionAuthentication]


def test_project_creator_points_at_user_model():
    field = Project._meta.get_field("created_by")

    assert field.related_model is get_user_model()


@pytest.mark.parametrize(
    "first_import",
    ["rest_framework.views", "backend.exceptions", "accounts.authentication", "backend.urls"],
)
def test_fresh_interpreter_loads_project(first_import):
    script = (
        "import django; django.setup(); "
        f"import {first_import}; "
        "import backend.urls; "
        "from rest_framework.views import APIView; "
        "APIView().get_authenticators()"
    )
    env = {**os.environ, "DJANGO_SETTINGS_MODULE": "backend.settings"}

    result = subprocess.run(
        [sys.executable, "-c", script],
        cwd=BACKEND_DIR,
        env=env,
        capture_output=True,
        text=True,
        timeout=120,
    )

    assert result.returncode == 0, result.stderr
