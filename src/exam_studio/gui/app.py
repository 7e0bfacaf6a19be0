"""
Entry point for the PySide6 exam editor.
"""
import logging
import sys


def build_session(config):
    """Wire client, services, token store and autosave for a config."""
    from exam_studio.api import AdminService, ApiClient, StoredTokenProvider, TaxonomyService
    from exam_studio.editor.autosave import DraftSnapshotStore
    from exam_studio.editor.session import ExamEditorSession
    from exam_studio.storage import LocalStorage

    token_provider = StoredTokenProvider(LocalStorage(config.storage_path))
    client = ApiClient(config.api_base_url, token_provider, timeout=config.request_timeout)
    session = ExamEditorSession(
        AdminService(client),
        autosave=DraftSnapshotStore(config.autosave_dir),
        upload_workers=config.image_upload_workers,
    )
    return session, TaxonomyService(client), client


def run(argv=None):
    """
    Main entry point for the GUI application.

    Optional argument: an exam id to open on start.
    """
    from PySide6.QtWidgets import QApplication, QMessageBox
    from exam_studio.editor.config import EditorConfig
    from exam_studio.gui.editor_window import EditorWindow
    from exam_studio.gui.styles import GLOBAL_STYLESHEET
    from exam_studio.api.client import ApiError

    argv = list(sys.argv if argv is None else argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = QApplication(argv)
    app.setApplicationName("Exam Studio")
    app.setOrganizationName("Exam Studio")
    app.setStyleSheet(GLOBAL_STYLESHEET)

    config = EditorConfig.from_env()
    session, taxonomy, client = build_session(config)

    exam_id = argv[1] if len(argv) > 1 else None
    if exam_id:
        try:
            session.load(exam_id)
        except ApiError as e:
            QMessageBox.warning(None, "Exam Studio", f"Failed to load exam {exam_id}: {e}")

    window = EditorWindow(session, taxonomy, config)
    window.show()
    window.offer_recovery(exam_id)

    code = app.exec()
    client.close()
    return code


if __name__ == "__main__":
    sys.exit(run())
