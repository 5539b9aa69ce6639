import os
import tempfile
from io import BytesIO

os.environ.setdefault("SIGNDECK_LOG_DIR", tempfile.mkdtemp(prefix="signdeck_logs_"))

import pikepdf
import pytest
from PIL import Image
from pikepdf import Name


def _make_pdf(path, page_sizes, rotations=None, creator=None):
    pdf = pikepdf.new()
    for i, size in enumerate(page_sizes):
        pdf.add_blank_page(page_size=size)
        if rotations and rotations[i]:
            pdf.pages[-1].obj[Name('/Rotate')] = rotations[i]
    if creator:
        pdf.trailer[Name('/Info')] = pdf.make_indirect(pikepdf.Dictionary({'/Creator': creator}))
    pdf.save(str(path))
    pdf.close()
    return str(path)


@pytest.fixture
def make_pdf(tmp_path):
    counter = {"n": 0}

    def factory(page_sizes, rotations=None, creator=None):
        counter["n"] += 1
        return _make_pdf(tmp_path / f"doc_{counter['n']}.pdf", page_sizes, rotations, creator)
    return factory


@pytest.fixture
def signature_png():
    img = Image.new("RGBA", (300, 100), (0, 0, 0, 0))
    for x in range(20, 280):
        img.putpixel((x, 50), (0, 0, 128, 255))
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
