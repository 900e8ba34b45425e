"""Test file storage and the attachment manager."""
import io
import uuid

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from core.errors import NotFoundError, ValidationFailed
from core.storage import FileStorage, FileTooLargeError, StoredFile, readable_file_size
from verticals.tasks.attachments import AttachmentManager
from verticals.tasks.models.db_models import AttachedDocument, Task


def _upload(name: str, data: bytes, content_type: str = "text/plain") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


@pytest.mark.parametrize(
    "size,label",
    [(0, "0 Byte"), (512, "512 Bytes"), (1536, "1.5 KB"), (3 * 1024 * 1024, "3 MB")],
)
def test_readable_file_size(size, label):
    assert readable_file_size(size) == label


@pytest.mark.asyncio
async def test_save_writes_under_generated_name(tmp_path):
    storage = FileStorage(tmp_path / "uploads")
    stored = await storage.save(_upload("Report.PDF", b"hello world", "application/pdf"))

    assert stored.file_name == "Report.PDF"
    assert stored.file_type == "application/pdf"
    assert stored.file_size == 11
    assert stored.file_path.endswith(".pdf")
    assert storage.exists(stored.file_path)
    assert storage.public_url(stored.file_path).startswith("/uploads/")


@pytest.mark.asyncio
async def test_save_rejects_oversized_file(tmp_path):
    storage = FileStorage(tmp_path, max_file_size=4)
    with pytest.raises(FileTooLargeError):
        await storage.save(_upload("big.txt", b"0123456789"))
    assert list(tmp_path.iterdir()) == []


def test_delete_is_best_effort(tmp_path, caplog):
    storage = FileStorage(tmp_path)
    assert storage.delete(tmp_path / "missing.txt") is False

    # Unlinking a directory fails with an OSError.
    folder = tmp_path / "folder"
    folder.mkdir()
    assert storage.delete(folder) is False
    assert "Error deleting file" in caplog.text


# ---------------------------------------------------------------------------
# AttachmentManager
# ---------------------------------------------------------------------------

def _doc(tmp_path, name: str, position: int) -> AttachedDocument:
    path = tmp_path / name
    path.write_bytes(b"data")
    return AttachedDocument(
        id=uuid.uuid4(),
        position=position,
        file_name=name,
        file_path=str(path),
        file_type="text/plain",
        file_size=4,
    )


@pytest.mark.asyncio
async def test_store_rejects_too_many_files(tmp_path):
    manager = AttachmentManager(FileStorage(tmp_path), max_files=3)
    files = [_upload(f"f{i}.txt", b"x") for i in range(4)]
    with pytest.raises(ValidationFailed) as info:
        await manager.store(files)
    assert info.value.errors[0].field == "documents"
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_store_discards_earlier_files_when_one_is_too_large(tmp_path):
    manager = AttachmentManager(FileStorage(tmp_path, max_file_size=4), max_files=3)
    with pytest.raises(ValidationFailed):
        await manager.store([_upload("ok.txt", b"ok"), _upload("big.txt", b"0123456789")])
    assert list(tmp_path.iterdir()) == []


def test_add_appends_after_existing(tmp_path):
    manager = AttachmentManager(FileStorage(tmp_path))
    task = Task(title="t", description="d")
    task.documents.append(_doc(tmp_path, "first.txt", 0))

    added = manager.add(task, [StoredFile("second.txt", str(tmp_path / "second.txt"), "text/plain", 2)])
    assert [d.file_name for d in task.documents] == ["first.txt", "second.txt"]
    assert added[0].position == 1


def test_remove_detaches_even_if_file_is_gone(tmp_path, caplog):
    manager = AttachmentManager(FileStorage(tmp_path))
    task = Task(title="t", description="d")
    keep = _doc(tmp_path, "keep.txt", 0)
    gone = _doc(tmp_path, "gone.txt", 1)
    task.documents.extend([keep, gone])
    (tmp_path / "gone.txt").unlink()

    removed = manager.remove(task, str(gone.id))
    assert removed is gone
    assert task.documents == [keep]
    assert "was not removed from storage" in caplog.text


def test_get_unknown_document(tmp_path):
    manager = AttachmentManager(FileStorage(tmp_path))
    task = Task(title="t", description="d")
    with pytest.raises(NotFoundError):
        manager.get(task, "not-a-uuid")
    with pytest.raises(NotFoundError):
        manager.get(task, str(uuid.uuid4()))


def test_delete_all_counts_removed_files(tmp_path):
    manager = AttachmentManager(FileStorage(tmp_path))
    task = Task(title="t", description="d")
    task.documents.extend([_doc(tmp_path, "a.txt", 0), _doc(tmp_path, "b.txt", 1)])
    (tmp_path / "b.txt").unlink()

    assert manager.delete_all(task) == 1
    assert not (tmp_path / "a.txt").exists()
