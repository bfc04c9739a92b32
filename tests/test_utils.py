"""Tests for trace file helpers."""
import os

from hmci.utils import get_trace_output_path, write_trace


def test_trace_path_is_filesystem_safe(tmp_path):
    path = get_trace_output_path('partition', 'abc/../def 1', str(tmp_path))
    name = os.path.basename(path)
    assert os.path.dirname(path) == str(tmp_path)
    assert name.startswith('partition_abc..def1_')
    assert name.endswith('.json')


def test_trace_path_without_id(tmp_path):
    name = os.path.basename(get_trace_output_path('energy', None, str(tmp_path)))
    assert name.startswith('energy_')


def test_write_trace(tmp_path):
    path = write_trace('system', 'sys01', '{"a": 1}', str(tmp_path / 'traces'))
    with open(path) as f:
        assert f.read() == '{"a": 1}'


def test_write_trace_failure_is_not_raised(tmp_path):
    blocker = tmp_path / 'file'
    blocker.write_text('x')
    assert write_trace('system', 'sys01', '{}', str(blocker / 'sub')) is None
