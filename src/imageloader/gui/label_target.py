"""``QLabel`` adapter exposing the bind-target contract."""

from __future__ import annotations

from typing import Optional

from PIL import Image
from PIL.ImageQt import ImageQt
from PySide6.QtCore import QSize
from PySide6.QtGui import QColor, QImage, QPixmap
from PySide6.QtWidgets import QLabel

from ..application.interfaces import BindTarget


def qpixmap_from_pil(image: Image.Image) -> QPixmap:
    """Convert a decoded Pillow image into a :class:`QPixmap`."""

    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")
    # ``ImageQt`` borrows Pillow's buffer; copy into a QImage that owns its data.
    return QPixmap.fromImage(QImage(ImageQt(image)).copy())


def default_placeholder(size: QSize = QSize(64, 64)) -> QPixmap:
    pixmap = QPixmap(size)
    pixmap.fill(QColor("#d9d9d9"))
    return pixmap


class LabelBindTarget(BindTarget):
    """Bind target backed by a ``QLabel`` inside a recycled list row.

    The expected url is kept in :attr:`tag` on the adapter itself so the
    loader never has to inspect widget properties to decide whether a late
    result still belongs to this row.
    """

    def __init__(self, label: QLabel, placeholder: Optional[QPixmap] = None) -> None:
        self._label = label
        self._placeholder = placeholder if placeholder is not None else default_placeholder()
        self.tag: Optional[str] = None

    @property
    def label(self) -> QLabel:
        return self._label

    def set_tag(self, key: Optional[str]) -> None:
        self.tag = key

    def get_tag(self) -> Optional[str]:
        return self.tag

    def set_placeholder(self) -> None:
        self._label.setPixmap(self._placeholder)

    def set_image(self, image: Image.Image | QPixmap) -> None:
        pixmap = image if isinstance(image, QPixmap) else qpixmap_from_pil(image)
        self._label.setPixmap(pixmap)
