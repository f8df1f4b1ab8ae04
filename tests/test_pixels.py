import pytest

from frameconv.pixels import yuv2rgb


def test_neutral_mid_grey():
    assert yuv2rgb(128, 128, 128) == (130, 130, 130)


def test_black_clamps_to_zero():
    assert yuv2rgb(0, 128, 128) == (0, 0, 0)


def test_white_clamps_to_full():
    assert yuv2rgb(255, 128, 128) == (255, 255, 255)


@pytest.mark.parametrize("y", [0, 17, 64, 128, 200, 255])
def test_neutral_chroma_gives_grey(y):
    r, g, b = yuv2rgb(y, 128, 128)
    assert r == g == b


def test_output_always_in_byte_range():
    for y in range(0, 256, 15):
        for u in range(0, 256, 17):
            for v in range(0, 256, 17):
                assert all(0 <= c <= 255 for c in yuv2rgb(y, u, v))


def test_luma_is_monotonic():
    previous = yuv2rgb(0, 100, 150)
    for y in range(1, 256):
        current = yuv2rgb(y, 100, 150)
        assert all(c >= p for c, p in zip(current, previous))
        previous = current


def test_u_does_not_affect_red():
    reds = {yuv2rgb(120, u, 90)[0] for u in range(256)}
    assert len(reds) == 1


def test_v_does_not_affect_blue():
    blues = {yuv2rgb(120, 90, v)[2] for v in range(256)}
    assert len(blues) == 1


def test_higher_v_increases_red():
    assert yuv2rgb(128, 128, 200)[0] > yuv2rgb(128, 128, 60)[0]


def test_higher_u_increases_blue():
    assert yuv2rgb(128, 200, 128)[2] > yuv2rgb(128, 60, 128)[2]


@pytest.mark.parametrize("args", [(-1, 0, 0), (0, 256, 0), (0, 0, 300)])
def test_out_of_range_sample_rejected(args):
    with pytest.raises(ValueError):
        yuv2rgb(*args)