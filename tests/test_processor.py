"""
Test the audio processing state machine and per-file orchestration
"""

import asyncio
import threading
import time
import pytest
from pathlib import Path
from unittest.mock import MagicMock
from radio_ingest.errors import CopyFailure, TranscodeFailure
from radio_ingest.ffmpeg_runner import FFmpegTranscoder, FFprobeProber
from radio_ingest.models import JobState, ProbeInfo, ProcessingOptions
from radio_ingest.processor import (
    FALLBACK_MARKER, AudioProcessor, create_audio_processor, describe_command,
    plan_file, process_file,
)


class FakeProber:
    def __init__(self, duration=30.0, fallback=False):
        self.calls = []
        self.info = ProbeInfo(duration=duration, stream_count=1, fallback_used=fallback)

    async def probe(self, path):
        self.calls.append(path)
        return self.info


class FakeTranscoder:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def transcode(self, inp, out, chain):
        self.calls.append((inp, out, chain))
        out.write_bytes(b'transcoded')
        if self.error:
            raise self.error


class SlowCopier:
    """Writes part of the file, stalls, then finishes it like an uninterruptible copy"""

    def __init__(self):
        self.started = threading.Event()
        self.finished = threading.Event()

    def __call__(self, src, dst):
        dst.parent.mkdir(parents=True, exist_ok=True)
        dst.write_bytes(b'0123456789')
        self.started.set()
        time.sleep(0.3)
        with open(dst, 'ab') as f:
            f.write(src.read_bytes())
        self.finished.set()
        return dst


class BrokenProber:
    async def probe(self, path):
        raise RuntimeError('prober crashed')


class HangingTranscoder:
    def __init__(self):
        self.started = asyncio.Event()

    async def transcode(self, inp, out, chain):
        out.write_bytes(b'partial')
        self.started.set()
        await asyncio.sleep(60)


@pytest.fixture
def source(tmp_path):
    path = tmp_path / 'in' / 'News_2024_01_15.wav'
    path.parent.mkdir()
    path.write_bytes(b'RIFF original audio')
    return path


@pytest.fixture
def dest(tmp_path):
    return tmp_path / 'out' / 'News.wav'


class TestProcessAudio:
    """Test job state transitions"""

    @pytest.mark.asyncio
    async def test_pass_through_copies_bytes(self, source, dest):
        prober, transcoder = FakeProber(), FakeTranscoder()
        result = await AudioProcessor(prober, transcoder).process_audio(source, dest, ProcessingOptions())

        assert result.success is True
        assert result.state == JobState.DONE
        assert result.transcoded is False
        assert result.processed_duration == 0
        assert dest.read_bytes() == source.read_bytes()
        assert transcoder.calls == []
        assert prober.calls == [source]
        assert result.history == [JobState.IDLE, JobState.PROBING, JobState.DIRECT_COPY, JobState.DONE]

    @pytest.mark.asyncio
    async def test_transcode_success(self, source, dest):
        transcoder = FakeTranscoder()
        options = ProcessingOptions(trim_start=10, trim_end=20, output_format='mp3')
        result = await AudioProcessor(FakeProber(30), transcoder).process_audio(source, dest, options)

        assert result.success is True
        assert result.transcoded is True
        assert result.used_fallback is False
        assert result.original_duration == 30
        assert result.processed_duration == 10
        assert result.output_path == dest
        assert result.history == [JobState.IDLE, JobState.PROBING, JobState.BUILDING_FILTERS,
                                  JobState.TRANSCODING, JobState.DONE]
        _, _, chain = transcoder.calls[0]
        assert chain.filters[0] == 'atrim=start=10:duration=10'

    @pytest.mark.asyncio
    async def test_transcode_failure_falls_back_to_copy(self, source, dest):
        error = TranscodeFailure('FFmpeg failed with code 1: boom', 1, 'boom')
        result = await AudioProcessor(FakeProber(), FakeTranscoder(error)).process_audio(
            source, dest, ProcessingOptions(fade_in=True))

        assert result.success is True
        assert result.state == JobState.DONE
        assert result.used_fallback is True
        assert 'FFmpeg failed with code 1' in result.error
        assert FALLBACK_MARKER in result.error
        assert dest.read_bytes() == source.read_bytes()
        assert JobState.FALLBACK_COPY in result.history

    @pytest.mark.asyncio
    async def test_spawn_error_falls_back_to_copy(self, source, dest):
        result = await AudioProcessor(FakeProber(), FakeTranscoder(FileNotFoundError('ffmpeg'))).process_audio(
            source, dest, ProcessingOptions(output_format='mp3'))
        assert result.success is True
        assert result.used_fallback is True

    @pytest.mark.asyncio
    async def test_fallback_copy_failure_fails_job(self, source, dest):
        copier = MagicMock(side_effect=CopyFailure('disk full'))
        processor = AudioProcessor(FakeProber(), FakeTranscoder(TranscodeFailure('bad')), copier=copier)
        result = await processor.process_audio(source, dest, ProcessingOptions(output_format='mp3'))

        assert result.success is False
        assert result.state == JobState.FAILED
        assert result.error == 'disk full'
        assert result.history[-2:] == [JobState.FALLBACK_COPY, JobState.FAILED]
        assert not dest.exists()

    @pytest.mark.asyncio
    async def test_pass_through_copy_failure(self, tmp_path, dest):
        missing = tmp_path / 'missing.wav'
        result = await AudioProcessor(FakeProber(), FakeTranscoder()).process_audio(
            missing, dest, ProcessingOptions())
        assert result.success is False
        assert result.state == JobState.FAILED
        assert 'File copy failed' in result.error

    @pytest.mark.asyncio
    async def test_probe_fallback_is_a_warning(self, source, dest):
        result = await AudioProcessor(FakeProber(300, fallback=True), FakeTranscoder()).process_audio(
            source, dest, ProcessingOptions(fade_out=True))
        assert result.success is True
        assert any('Probe unavailable' in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_invalid_trim_is_a_warning(self, source, dest):
        result = await AudioProcessor(FakeProber(15), FakeTranscoder()).process_audio(
            source, dest, ProcessingOptions(trim_start=10, trim_end=20))
        assert result.success is True
        assert result.processed_duration == 15
        assert any('Invalid trim window' in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_explicit_needs_flag_wins(self, source, dest):
        transcoder = FakeTranscoder()
        result = await AudioProcessor(FakeProber(), transcoder).process_audio(
            source, dest, ProcessingOptions(output_format='mp3'), needs=False)
        assert result.transcoded is False
        assert transcoder.calls == []

    @pytest.mark.asyncio
    async def test_cancellation_removes_partial_output(self, source, dest):
        transcoder = HangingTranscoder()
        processor = AudioProcessor(FakeProber(), transcoder)
        task = asyncio.create_task(processor.process_audio(source, dest, ProcessingOptions(fade_in=True)))

        await asyncio.wait_for(transcoder.started.wait(), 5)
        assert dest.exists()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not dest.exists()

    @pytest.mark.asyncio
    async def test_cancel_during_pass_through_copy(self, source, dest):
        copier = SlowCopier()
        processor = AudioProcessor(FakeProber(), FakeTranscoder(), copier=copier)
        task = asyncio.create_task(processor.process_audio(source, dest, ProcessingOptions()))

        assert await asyncio.to_thread(copier.started.wait, 5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert copier.finished.is_set()
        assert not dest.exists()

    @pytest.mark.asyncio
    async def test_cancel_during_fallback_copy(self, source, dest):
        copier = SlowCopier()
        processor = AudioProcessor(FakeProber(), FakeTranscoder(TranscodeFailure('bad')), copier=copier)
        task = asyncio.create_task(processor.process_audio(source, dest, ProcessingOptions(output_format='mp3')))

        assert await asyncio.to_thread(copier.started.wait, 5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert copier.finished.is_set()
        assert not dest.exists()


class TestCreateAudioProcessor:
    """Test wiring collaborators from settings"""

    def test_collaborators_use_settings(self, settings):
        settings.fade_in_seconds = 1.5
        processor = create_audio_processor(settings)
        assert isinstance(processor.prober, FFprobeProber)
        assert isinstance(processor.transcoder, FFmpegTranscoder)
        assert processor.prober.timeout == settings.probe_timeout
        assert processor.transcoder.timeout == settings.transcode_timeout
        assert processor.fade_in_duration == 1.5


class TestPlanFile:
    """Test per-file planning without side effects"""

    def test_plan_with_extracted_date(self, make_show, settings, tmp_path):
        show = make_show(audio_settings={'output_format': 'mp3'},
                         file_naming={'output_pattern': '{showName}_{YYYY}{MM}{DD}'},
                         metadata={'title': '{showName} {YYYY}-{MM}-{DD}'})
        plan = plan_file(Path('News_2024_01_15.wav'), show, settings, tmp_path)

        assert plan['pattern'] == '{SHOW}_{YYYY}_{MM}_{DD}'
        assert plan['extraction'].success is True
        assert plan['extracted_date'].day == 15
        assert plan['needs_processing'] is True
        assert plan['options'].metadata['title'] == 'Morning Show 2024-01-15'
        assert plan['output_path'] == tmp_path / 'Morning_Show_20240115.mp3'

    def test_pass_through_keeps_extension(self, make_show, settings, tmp_path):
        plan = plan_file(Path('News_2024_01_15.MP3'), make_show(), settings, tmp_path)
        assert plan['needs_processing'] is False
        assert plan['output_path'] == tmp_path / 'Morning_Show.mp3'

    def test_unmatched_file_uses_first_pattern(self, make_show, settings, tmp_path):
        plan = plan_file(Path('random.wav'), make_show(), settings, tmp_path)
        assert plan['pattern'] == '{SHOW}_{YYYY}_{MM}_{DD}'
        assert plan['extraction'].success is False
        assert plan['extracted_date'] is None

    def test_show_without_patterns(self, make_show, settings, tmp_path):
        plan = plan_file(Path('random.wav'), make_show(file_patterns=[]), settings, tmp_path)
        assert plan['pattern'] is None
        assert plan['extraction'] is None

    def test_output_directory_resolution(self, make_show, settings, tmp_path):
        show = make_show(output_directory=f'"{tmp_path / "shows"}"')
        assert plan_file(Path('a.wav'), show, settings)['output_path'].parent == tmp_path / 'shows'
        assert plan_file(Path('a.wav'), make_show(), settings)['output_path'].parent == settings.output_base_dir

    def test_describe_command(self, make_show, settings, tmp_path):
        show = make_show(audio_settings={'output_format': 'mp3', 'bit_rate': 128})
        plan = plan_file(Path('News_2024_01_15.wav'), show, settings, tmp_path)
        chain, cmd = describe_command(plan, settings, ProbeInfo(duration=60))
        assert chain.codec_args == ['-codec:a', 'libmp3lame', '-b:a', '128k']
        assert cmd[0] == settings.ffmpeg_path
        assert cmd[-1] == str(plan['output_path'])

    def test_describe_command_pass_through(self, make_show, settings, tmp_path):
        plan = plan_file(Path('News_2024_01_15.wav'), make_show(), settings, tmp_path)
        assert describe_command(plan, settings, ProbeInfo(duration=60)) == (None, [])


class TestProcessFile:
    """Test per-file orchestration with fake collaborators"""

    @pytest.mark.asyncio
    async def test_transcoded_output_name(self, make_show, settings, source, tmp_path):
        show = make_show(audio_settings={'output_format': 'mp3'},
                         file_naming={'output_pattern': '{showName}_{YYYY}{MM}{DD}'})
        processor = AudioProcessor(FakeProber(), FakeTranscoder())
        result = await process_file(source, show, processor, settings, tmp_path / 'out')

        assert result.success is True
        assert result.output_path == tmp_path / 'out' / 'Morning_Show_20240115.mp3'
        assert result.output_path.exists()

    @pytest.mark.asyncio
    async def test_existing_output_gets_suffix(self, make_show, settings, source, tmp_path):
        out_dir = tmp_path / 'out'
        out_dir.mkdir()
        (out_dir / 'Morning_Show.wav').write_bytes(b'existing')

        processor = AudioProcessor(FakeProber(), FakeTranscoder())
        result = await process_file(source, make_show(), processor, settings, out_dir)

        assert result.output_path == out_dir / 'Morning_Show_1.wav'
        assert (out_dir / 'Morning_Show.wav').read_bytes() == b'existing'

    @pytest.mark.asyncio
    async def test_unsupported_extension(self, make_show, settings, tmp_path):
        path = tmp_path / 'notes.txt'
        path.write_text('hello')
        result = await process_file(path, make_show(), AudioProcessor(FakeProber(), FakeTranscoder()), settings)

        assert result.success is False
        assert result.error == 'Unsupported file extension: .txt'
        assert result.history == [JobState.IDLE, JobState.FAILED]

    @pytest.mark.asyncio
    async def test_missing_source(self, make_show, settings, tmp_path):
        prober = FakeProber()
        result = await process_file(tmp_path / 'gone.wav', make_show(),
                                    AudioProcessor(prober, FakeTranscoder()), settings)
        assert result.success is False
        assert 'Source file not found' in result.error
        assert prober.calls == []

    @pytest.mark.asyncio
    async def test_failed_job_leaves_no_reserved_file(self, make_show, settings, source, tmp_path):
        out_dir = tmp_path / 'out'
        copier = MagicMock(side_effect=CopyFailure('disk full'))
        processor = AudioProcessor(FakeProber(), FakeTranscoder(), copier=copier)
        result = await process_file(source, make_show(), processor, settings, out_dir)

        assert result.success is False
        assert result.error == 'disk full'
        assert list(out_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_unexpected_error_releases_reserved_file(self, make_show, settings, source, tmp_path):
        out_dir = tmp_path / 'out'
        processor = AudioProcessor(BrokenProber(), FakeTranscoder())
        with pytest.raises(RuntimeError, match='prober crashed'):
            await process_file(source, make_show(), processor, settings, out_dir)
        assert list(out_dir.iterdir()) == []
