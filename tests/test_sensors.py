import threading

import pytest

from fake_carla import ColorConverter, Image

from carla_bootstrap.sensors import FrameChannel, SemanticSegmentationSink, stream_frames


def test_channel_discards_oldest_when_full():
    channel = FrameChannel(maxsize=2)
    for frame in range(5):
        channel.put(frame)
    assert channel.drain() == [3, 4]
    assert channel.received == 5
    assert channel.discarded == 3


def test_channel_rejects_zero_capacity():
    with pytest.raises(ValueError):
        FrameChannel(maxsize=0)


def test_channel_crosses_threads():
    channel = FrameChannel(maxsize=16)
    producer = threading.Thread(target=lambda: [channel(i) for i in range(10)])
    producer.start()
    producer.join(timeout=5)
    assert channel.drain() == list(range(10))
    assert channel.get(timeout=0.01) is None


def test_stream_frames_until_deadline():
    channel = FrameChannel()
    for frame in range(3):
        channel.put(frame)
    ticks = iter([0.0, 0.0, 0.1, 0.2, 0.3, 5.0])
    handled = []
    count = stream_frames(channel, handled.append, 1.0, clock=lambda: next(ticks))
    assert count == 3
    assert handled == [0, 1, 2]


def test_semantic_segmentation_sink(tmp_path):
    sink = SemanticSegmentationSink(tmp_path / "images", api=type("Api", (), {"ColorConverter": ColorConverter}))
    image = Image(42, 1.0)
    path = sink(image)
    assert path == tmp_path / "images" / "00000042.png"
    assert image.saved == [(str(path), ColorConverter.CityScapesPalette)]
    assert (tmp_path / "images").is_dir()
    assert sink.saved == 1
