import io
import math
import wave

import numpy as np
import pytest

from tonic.tts.audio_builder import (
    AudioAssembler,
    assemble_waveforms,
    encode_wav,
    float_to_pcm16,
)

SR = 1000


def test_pcm_conversion_clamps_and_truncates():
    pcm = float_to_pcm16(np.array([1.0, -1.0, 2.0, -3.0, 0.5, -0.5, 0.0]))
    assert pcm.dtype == np.int16
    assert pcm.tolist() == [32767, -32767, 32767, -32767, 16383, -16383, 0]


def test_encode_wav_header():
    data = encode_wav(np.zeros(250, dtype=np.float32), SR)
    assert data[:4] == b"RIFF"
    assert data[8:12] == b"WAVE"
    with wave.open(io.BytesIO(data), "rb") as wf:
        assert wf.getnchannels() == 1
        assert wf.getsampwidth() == 2
        assert wf.getframerate() == SR
        assert wf.getnframes() == 250


def test_encode_wav_little_endian_samples():
    data = encode_wav(np.array([1.0, -1.0]), SR)
    with wave.open(io.BytesIO(data), "rb") as wf:
        frames = wf.readframes(2)
    assert np.frombuffer(frames, dtype="<i2").tolist() == [32767, -32767]


def test_single_chunk_is_trimmed_to_duration():
    assembler = AudioAssembler(SR, silence_seconds=0.3)
    assembler.add_chunk(np.full(1010, 0.1, dtype=np.float32), 1.0)
    assert assembler.duration == 1.0
    assert assembler.chunk_count == 1
    assert assembler.waveform.shape == (1000,)


def test_two_chunks_with_silence():
    assembler = AudioAssembler(SR, silence_seconds=0.3)
    assembler.add_chunk(np.full(1005, 0.1, dtype=np.float32), 1.0)
    assembler.add_chunk(np.full(2010, 0.2, dtype=np.float32), 2.0)

    assert assembler.duration == pytest.approx(3.3)
    assert assembler.chunk_count == 2
    wav = assembler.waveform
    assert len(wav) == int(math.floor(SR * assembler.duration))
    assert abs(len(wav) - 3300) <= 1

    np.testing.assert_allclose(wav[:1005], 0.1)
    np.testing.assert_array_equal(wav[1005:1305], 0.0)
    np.testing.assert_allclose(wav[1305:], 0.2)


def test_underproduced_chunk_is_not_padded():
    assembler = AudioAssembler(SR, silence_seconds=0.0)
    assembler.add_chunk(np.ones(500, dtype=np.float32), 1.0)
    assert len(assembler.waveform) == 500


def test_assemble_waveforms_matches_assembler():
    wav, duration = assemble_waveforms(
        [np.ones(600), np.ones(600)], [0.5, 0.5], silence_seconds=0.25, sample_rate=SR
    )
    assert duration == pytest.approx(1.25)
    assert len(wav) == 1250


def test_empty_assembler():
    assembler = AudioAssembler(SR)
    assert assembler.is_empty
    assert assembler.waveform.size == 0
    assert assembler.duration == 0.0


def test_negative_silence_rejected():
    with pytest.raises(ValueError):
        AudioAssembler(SR, silence_seconds=-0.1)


def test_to_segment():
    assembler = AudioAssembler(SR)
    assembler.add_chunk(np.full(400, 0.5, dtype=np.float32), 0.4)
    segment = assembler.to_segment()
    assert segment.frame_rate == SR
    assert segment.channels == 1
    assert segment.sample_width == 2
    assert len(segment.get_array_of_samples()) == 400
    assert len(segment) == 400  # milliseconds


def test_export_wav(tmp_path):
    assembler = AudioAssembler(SR)
    assembler.add_chunk(np.zeros(300, dtype=np.float32), 0.3)
    out = tmp_path / "nested" / "out.wav"
    assembler.export_wav(str(out))

    with wave.open(str(out), "rb") as wf:
        assert wf.getframerate() == SR
        assert wf.getnframes() == 300
