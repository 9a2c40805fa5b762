"""
Test configuration: default backend resolution and IRLS control.
"""

import pytest

import pyirls
from pyirls import IRLSControl, get_default_backend, set_default_backend


@pytest.fixture(autouse=True)
def _reset_override(monkeypatch):
    monkeypatch.delenv('PYIRLS_BACKEND', raising=False)
    set_default_backend(None)
    yield
    set_default_backend(None)


class TestDefaultBackend:

    def test_default_is_cpu(self):
        assert get_default_backend() == 'cpu'

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv('PYIRLS_BACKEND', ' AUTO ')
        assert get_default_backend() == 'auto'

    def test_invalid_environment_value_ignored(self, monkeypatch):
        monkeypatch.setenv('PYIRLS_BACKEND', 'quantum')
        assert get_default_backend() == 'cpu'

    def test_override_beats_environment(self, monkeypatch):
        monkeypatch.setenv('PYIRLS_BACKEND', 'auto')
        set_default_backend('CPU')
        assert get_default_backend() == 'cpu'

    def test_override_cleared(self):
        set_default_backend('auto')
        set_default_backend(None)
        assert get_default_backend() == 'cpu'

    def test_invalid_override(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            set_default_backend('tpu')

    def test_get_backend_uses_default(self):
        set_default_backend('cpu')
        assert pyirls.get_backend().name == 'cpu_fp64'


class TestIRLSControl:

    def test_defaults_match_r(self):
        control = IRLSControl()
        assert control.epsilon == 1e-8
        assert control.maxit == 25

    def test_updated_returns_copy(self):
        control = IRLSControl()
        tighter = control.updated(epsilon=1e-12, maxit=50)
        assert tighter.epsilon == 1e-12
        assert tighter.maxit == 50
        assert control.epsilon == 1e-8

    def test_unknown_field(self):
        with pytest.raises(TypeError, match="Unknown control"):
            IRLSControl().updated(tolerance=1e-3)

    @pytest.mark.parametrize("kwargs", [
        {'epsilon': 0.0},
        {'maxit': 0},
        {'maxhalf': -1},
    ])
    def test_validation(self, kwargs):
        with pytest.raises(ValueError):
            IRLSControl(**kwargs)
