"""
Main window listing installed addons and their update state.
"""

from __future__ import annotations

from typing import Callable, FrozenSet

from PySide6.QtCore import QPoint, Qt, Signal, Slot
from PySide6.QtGui import QAction, QCloseEvent
from PySide6.QtWidgets import (
    QAbstractItemView,
    QHeaderView,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMenu,
    QTableWidget,
    QTableWidgetItem,
    QWidget,
)

from shared.addon_record import normalize_addon_id
from worker.runtime import WorkerSnapshot

_COLUMNS = ("Name", "Installed", "Available", "Automatic updates")


class AddonsWindow(QMainWindow):
    closed = Signal()
    exclusionToggled = Signal(str, bool)
    installRequested = Signal(str)

    def __init__(
        self,
        *,
        title: str,
        hide_on_close: Callable[[], bool] = lambda: True,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle(title)
        self.resize(900, 600)
        self._hide_on_close = hide_on_close
        self._quitting = False
        self._excluded: FrozenSet[str] = frozenset()

        self._table = QTableWidget(0, len(_COLUMNS), self)
        self._table.setHorizontalHeaderLabels(list(_COLUMNS))
        self._table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self._table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self._table.verticalHeader().setVisible(False)
        self._table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        self._table.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self._table.customContextMenuRequested.connect(self._on_table_context_menu)
        self.setCentralWidget(self._table)

        addons_menu = self.menuBar().addMenu("Addons")
        install_action = QAction("Install addon...", self)
        install_action.triggered.connect(self._prompt_install)
        addons_menu.addAction(install_action)

        self._last_check_label = QLabel("Last check: never")
        self.statusBar().addPermanentWidget(self._last_check_label)

    def allow_close(self) -> None:
        """Let the next close event actually close the window (used on quit)."""
        self._quitting = True

    def toggle(self) -> None:
        if self.isVisible():
            self.hide()
        else:
            self.bring_to_front()

    def bring_to_front(self) -> None:
        if self.isMinimized():
            self.showNormal()
        self.show()
        self.raise_()
        self.activateWindow()

    def set_excluded(self, addon_id: str, excluded: bool) -> None:
        self.exclusionToggled.emit(normalize_addon_id(addon_id), excluded)

    def request_install(self, main_file_id: str) -> bool:
        file_id = normalize_addon_id(main_file_id)
        if not file_id.isdigit():
            self.statusBar().showMessage(f"'{main_file_id}' is not a valid file id.", 5000)
            return False
        self.installRequested.emit(file_id)
        self.statusBar().showMessage(f"Installing file {file_id}...", 5000)
        return True

    @Slot(object)
    def show_snapshot(self, snapshot: WorkerSnapshot) -> None:
        self._excluded = frozenset(snapshot.excluded)
        self._table.setSortingEnabled(False)
        self._table.setRowCount(len(snapshot.installed))
        for row, addon in enumerate(snapshot.installed):
            update = snapshot.updates.get(addon.id)
            available = update.version if update else ""
            automatic = "Off" if addon.id in self._excluded else "On"
            for column, text in enumerate((addon.name, addon.installed_version, available, automatic)):
                item = QTableWidgetItem(text)
                item.setData(Qt.ItemDataRole.UserRole, addon.id)
                self._table.setItem(row, column, item)
        self._table.setSortingEnabled(True)

        pending = len(snapshot.updates)
        self.statusBar().showMessage(f"{pending} update(s) available" if pending else "All addons up to date")
        self._last_check_label.setText(f"Last check: {_format_last_check(snapshot)}")

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        if not self._quitting and self._hide_on_close():
            event.ignore()
            self.hide()
            return
        super().closeEvent(event)
        if not self._quitting:
            self.closed.emit()

    def _on_table_context_menu(self, pos: QPoint) -> None:
        item = self._table.itemAt(pos)
        if item is None:
            return
        addon_id = item.data(Qt.ItemDataRole.UserRole)
        menu = QMenu(self)
        exclude_action = menu.addAction("Exclude from automatic updates")
        exclude_action.setCheckable(True)
        exclude_action.setChecked(addon_id in self._excluded)
        exclude_action.toggled.connect(lambda checked: self.set_excluded(addon_id, checked))
        menu.exec(self._table.viewport().mapToGlobal(pos))

    def _prompt_install(self) -> None:
        text, ok = QInputDialog.getText(self, "Install addon", "CurseForge file id:")
        if ok and text.strip():
            self.request_install(text)


def _format_last_check(snapshot: WorkerSnapshot) -> str:
    if snapshot.last_check is None:
        return "never"
    return snapshot.last_check.astimezone().strftime("%Y-%m-%d %H:%M")
