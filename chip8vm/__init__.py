from chip8vm.computer import C8Computer
from chip8vm.decode import Op, Instruction, decode
from chip8vm.errors import (C8Exception, StackOverflowException, StackUnderflowException,
                            RomTooLargeException)
from chip8vm.screen import C8Screen

__version__ = "0.1.0"
