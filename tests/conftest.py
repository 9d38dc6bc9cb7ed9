import pytest
import os
from unittest.mock import patch


@pytest.fixture(autouse=True)
def mock_settings_env_vars(tmp_path):
    """Automatically mock HOME so user config never leaks into tests."""
    fake_home = tmp_path / "fake_home"
    fake_home.mkdir()

    with patch("pathlib.Path.home", return_value=fake_home):
        with patch.dict(os.environ, {"HOME": str(fake_home)}):
            yield
