import pytest

from chip8vm.computer import C8Computer
from helpers import words_to_rom


@pytest.fixture
def make_computer():
    def _make(words=(), **kwargs):
        c8 = C8Computer(**kwargs)
        c8.load(words_to_rom(words))
        return c8
    return _make
