import os
import tempfile

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("WOWCLASSICUI_LOG_DIR", tempfile.mkdtemp(prefix="wowclassicui_logs_"))

import pytest  # noqa: E402
from PySide6.QtCore import QSettings  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from shared.settings import SettingsStore  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def settings_store(tmp_path):
    qsettings = QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat)
    return SettingsStore(qsettings)


@pytest.fixture
def write_addon():
    def _write(addons_dir, folder, headers):
        """Create an addon folder with a .toc made of ``## Key: Value`` lines."""
        path = addons_dir / folder
        path.mkdir(parents=True, exist_ok=True)
        lines = [f"## {key}: {value}" for key, value in headers.items()]
        (path / f"{folder}.toc").write_text("\n".join(lines) + f"\n{folder}.lua\n", encoding="utf-8")
        (path / f"{folder}.lua").write_text(f"-- {folder}\n", encoding="utf-8")
        return path

    return _write
