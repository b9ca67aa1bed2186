from __future__ import annotations

import os
from typing import Optional

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QSizeF
from PySide6.QtGui import QFont, QGuiApplication, QPageSize, QPdfWriter, QTextDocument


_APPLICATION: Optional[QGuiApplication] = None


def _ensure_application() -> None:
    global _APPLICATION
    if QGuiApplication.instance() is not None:
        return
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    _APPLICATION = QGuiApplication([])


def write_pdf_bytes(html_content: str) -> bytes:
    _ensure_application()

    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.WriteOnly)  # type: ignore[attr-defined]

    pdf_writer = QPdfWriter(buffer)
    pdf_writer.setPageSize(QPageSize(QPageSize.A4))  # type: ignore[attr-defined]
    pdf_writer.setResolution(144)

    document = QTextDocument()
    document.setDocumentMargin(36)
    document.setDefaultFont(QFont("Helvetica", 10))
    document.setHtml(html_content)

    page_width = pdf_writer.width()
    page_height = pdf_writer.height()
    document.setPageSize(QSizeF(page_width, page_height))

    document.print_(pdf_writer)
    buffer.close()
    return bytes(data.data())
