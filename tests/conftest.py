"""
pytest configuration and fixtures for radio ingest tests

Audio fixtures are generated on the fly with ffmpeg's lavfi sine source;
tests that need them are skipped when ffmpeg is not installed.
"""

import json
import pytest
import tempfile
import shutil
import subprocess
from pathlib import Path
import sys

# Add the project root to path for importing
sys.path.insert(0, str(Path(__file__).parent.parent))
from radio_ingest.config import Settings
from radio_ingest.models import ShowProfile


@pytest.fixture(scope="session")
def check_ffmpeg():
    """Check if ffmpeg is available before running tests"""
    try:
        subprocess.run(['ffmpeg', '-version'], capture_output=True, check=True)
        subprocess.run(['ffprobe', '-version'], capture_output=True, check=True)
    except (subprocess.CalledProcessError, FileNotFoundError):
        pytest.skip("ffmpeg and/or ffprobe not available")


@pytest.fixture(scope="session")
def temp_dirs():
    """Create temporary directories for testing outputs"""
    temp_dir = Path(tempfile.mkdtemp(prefix='radio_ingest_pytest_'))

    dirs = {
        'temp': temp_dir,
        'audio': temp_dir / 'audio',
        'output': temp_dir / 'output',
        'reports': temp_dir / 'reports'
    }

    # Create directories
    for dir_path in dirs.values():
        dir_path.mkdir(exist_ok=True)

    yield dirs

    # Cleanup
    if temp_dir.exists():
        shutil.rmtree(temp_dir)


@pytest.fixture(scope="session")
def sine_wav(check_ffmpeg, temp_dirs):
    """A 3 second 440 Hz sine wave named like a real show file"""
    path = temp_dirs['audio'] / 'MorningShow_2024_01_15.wav'
    if not path.exists():
        subprocess.run([
            'ffmpeg', '-hide_banner', '-loglevel', 'error',
            '-f', 'lavfi', '-i', 'sine=frequency=440:duration=3',
            '-ac', '1', '-ar', '44100', '-y', str(path)
        ], capture_output=True, check=True)
    return path


@pytest.fixture
def run_converter():
    """Fixture to run the command line tool"""
    def _run_converter(args: list, expect_error: bool = False, env: dict = None):
        script_path = Path(__file__).parent.parent / 'main.py'
        cmd = [sys.executable, str(script_path)] + args
        result = subprocess.run(cmd, capture_output=True, text=True, env=env,
                                cwd=str(Path(__file__).parent.parent))

        if not expect_error and result.returncode != 0:
            pytest.fail(f"Converter failed: {result.stderr}\n{result.stdout}")

        return result

    return _run_converter


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and any .env file"""
    return Settings(_env_file=None, output_base_dir=tmp_path / 'Output',
                    probe_timeout=10, transcode_timeout=60)


@pytest.fixture
def make_show():
    """Factory for show profiles with sensible defaults"""
    def _make_show(**overrides) -> ShowProfile:
        data = {
            'name': 'Morning Show',
            'id': 'morning',
            'file_patterns': [{'pattern': '{SHOW}_{YYYY}_{MM}_{DD}', 'type': 'watch'}],
        }
        data.update(overrides)
        return ShowProfile.model_validate(data)

    return _make_show


@pytest.fixture
def write_profile(tmp_path):
    """Write a show profile dict to a JSON file and return its path"""
    def _write_profile(data: dict, name: str = 'show.json') -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding='utf-8')
        return path

    return _write_profile
