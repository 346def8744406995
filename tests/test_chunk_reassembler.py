"""Image chunk reassembly."""
import pytest

from models.session_models import ImageChunk, SessionContext
from services.realtime.chunk_reassembler import (
    ChunkReassembler,
    ChunkSequenceError,
    ImageTooLargeError,
    ImageUploadError,
)


def test_two_chunks_concatenate_in_arrival_order(context):
    reassembler = ChunkReassembler()

    assert reassembler.append(context, ImageChunk(b"AB", is_last=False)) is None
    image = reassembler.append(context, ImageChunk(b"CD", is_last=True))

    assert image == b"ABCD"
    assert context.image == b"ABCD"
    assert context.pending_image_chunks == []


@pytest.mark.parametrize(
    "payloads",
    [
        [b"\x89PNG"],
        [b"a", b"b", b"c", b"d", b"e"],
        [b"", b"xyz", b""],
        [bytes(range(200)), bytes(range(50, 120))],
    ],
)
def test_image_equals_concatenation_of_payloads(payloads):
    context = SessionContext(session_id="s")
    reassembler = ChunkReassembler()

    result = None
    for index, payload in enumerate(payloads):
        result = reassembler.append(context, ImageChunk(payload, is_last=index == len(payloads) - 1))

    assert result == b"".join(payloads)
    assert context.image == b"".join(payloads)


def test_pending_chunks_kept_until_terminal_chunk(context):
    reassembler = ChunkReassembler()
    reassembler.append(context, ImageChunk(b"12"))
    reassembler.append(context, ImageChunk(b"34"))

    assert context.pending_image_chunks == [b"12", b"34"]
    assert context.image is None


def test_new_upload_replaces_previous_image(context):
    reassembler = ChunkReassembler()
    reassembler.append(context, ImageChunk(b"old", is_last=True))
    reassembler.append(context, ImageChunk(b"new", is_last=True))

    assert context.image == b"new"


def test_numbered_chunks_in_order_are_accepted(context):
    reassembler = ChunkReassembler()
    reassembler.append(context, ImageChunk(b"A", seq=0))
    reassembler.append(context, ImageChunk(b"B", seq=1))
    image = reassembler.append(context, ImageChunk(b"C", is_last=True, seq=2))

    assert image == b"ABC"
    # the next upload starts numbering from zero again
    assert context.next_chunk_seq == 0
    assert reassembler.append(context, ImageChunk(b"Z", is_last=True, seq=0)) == b"Z"


def test_out_of_order_chunk_is_rejected_and_upload_discarded(context):
    reassembler = ChunkReassembler()
    reassembler.append(context, ImageChunk(b"A", seq=0))

    with pytest.raises(ChunkSequenceError):
        reassembler.append(context, ImageChunk(b"C", seq=2))

    assert context.pending_image_chunks == []
    assert context.next_chunk_seq == 0
    assert context.image is None


def test_oversized_upload_is_rejected(context):
    reassembler = ChunkReassembler(max_image_bytes=4)
    reassembler.append(context, ImageChunk(b"abc"))

    with pytest.raises(ImageTooLargeError):
        reassembler.append(context, ImageChunk(b"de", is_last=True))

    assert context.pending_image_chunks == []
    assert context.image is None


def test_upload_errors_are_value_errors():
    assert issubclass(ChunkSequenceError, ImageUploadError)
    assert issubclass(ImageTooLargeError, ImageUploadError)
    assert issubclass(ImageUploadError, ValueError)
