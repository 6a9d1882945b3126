import logging
import random
from array import array

from chip8vm.decode import Op, decode
from chip8vm.errors import RomTooLargeException, StackOverflowException, StackUnderflowException
from chip8vm.screen import C8Screen

logger = logging.getLogger(__name__)

MEMORY_SIZE = 4096
NUM_REGISTERS = 16
STACK_SIZE = 16
NUM_KEYS = 16
PROGRAM_START = 0x200
FONT_START = 0x050
# 1/60 of a second, in nanoseconds
TIMER_PERIOD_NS = 16666667
DEFAULT_FREQUENCY = 700
# the step period is kept in whole nanoseconds
MAX_FREQUENCY = 1000000000

FONT = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
        0x20, 0x60, 0x20, 0x20, 0x70,  # 1
        0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
        0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
        0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
        0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
        0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
        0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
        0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
        0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
        0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
        0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
        0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
        0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
        0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
        0xF0, 0x80, 0xF0, 0x80, 0x80]  # F


class C8Computer:

    def __init__(self, freq=DEFAULT_FREQUENCY, rng=None, wrap_sprites=False, shift_vy=False,
                 increment_i=False, vf_reset=False):
        if not 0 < freq <= MAX_FREQUENCY:
            raise ValueError("clock frequency must be between 1 and {} Hz, got {}".format(
                MAX_FREQUENCY, freq))
        # 4096 Bytes of RAM
        self.RAM = array('B', [0] * MEMORY_SIZE)
        # The 16 registers are named V0..VF
        self.V = array('B', [0] * NUM_REGISTERS)
        # Special-purpose 16-bit register; low 12 are used for an address
        self.I = 0
        # Program Counter
        self.PC = PROGRAM_START
        # Return addresses; SP is the number of occupied slots
        self.stack = array('H', [0] * STACK_SIZE)
        self.SP = 0
        self.screen = C8Screen()
        self.delay_register = 0
        self.sound_register = 0
        self.speed_ns = round(1000000000 / freq)
        self.decrement_timer = TIMER_PERIOD_NS
        self.keys_pressed = [False] * NUM_KEYS  # snapshot handed in by the host each step

        # anything with randrange(), e.g. a seeded random.Random in tests
        self.rng = rng if rng is not None else random

        # Config options to cover differences between modern CHIP-8 interpreters and the original
        self.wrap_sprites = wrap_sprites
        self.shift_vy = shift_vy
        self.increment_i = increment_i
        self.vf_reset = vf_reset

        self.load_font_sprites()

        # Each handler returns True when it changed the framebuffer.
        self.operations = {
            Op.NOP: self._nop, Op.CLS: self._00E0, Op.RET: self._00EE,
            Op.JP: self._1nnn, Op.CALL: self._2nnn, Op.SE_BYTE: self._3xkk,
            Op.SNE_BYTE: self._4xkk, Op.SE_REG: self._5xy0, Op.LD_BYTE: self._6xkk,
            Op.ADD_BYTE: self._7xkk, Op.LD_REG: self._8xy0, Op.OR: self._8xy1,
            Op.AND: self._8xy2, Op.XOR: self._8xy3, Op.ADD_REG: self._8xy4,
            Op.SUB: self._8xy5, Op.SHR: self._8xy6, Op.SUBN: self._8xy7,
            Op.SHL: self._8xyE, Op.SNE_REG: self._9xy0, Op.LD_I: self._Annn,
            Op.JP_V0: self._Bnnn, Op.RND: self._Cxkk, Op.DRW: self._Dxyn,
            Op.SKP: self._Ex9E, Op.SKNP: self._ExA1, Op.LD_VX_DT: self._Fx07,
            Op.LD_VX_K: self._Fx0A, Op.LD_DT_VX: self._Fx15, Op.LD_ST_VX: self._Fx18,
            Op.ADD_I: self._Fx1E, Op.LD_F: self._Fx29, Op.LD_B: self._Fx33,
            Op.LD_MEM_VX: self._Fx55, Op.LD_VX_MEM: self._Fx65, Op.UNKNOWN: self.invalid_op,
        }

    @property
    def speed(self):
        # seconds between steps
        return self.speed_ns / 1000000000

    @property
    def buzzer_active(self):
        return self.sound_register > 0

    def load_font_sprites(self):
        '''
        Video in the CHIP-8 is sprite-driven.  Each sprite is 8 pixels wide, and from 1-15 pixels high.
        A font representing 0..9 + A..F is required for proper operation.  Example for the character 2:

                   ****....
                   ...*....
                   ****....
                   *.......
                   ****....

        The font lives at 0x050-0x09F, inside the 0x000-0x1FF area reserved for the interpreter.
        '''
        for i, byte in enumerate(FONT):
            self.RAM[FONT_START + i] = byte

    def load(self, rom):
        rom = bytes(rom)
        if PROGRAM_START + len(rom) > MEMORY_SIZE:
            raise RomTooLargeException("ROM is {} bytes; at most {} fit".format(
                len(rom), MEMORY_SIZE - PROGRAM_START))
        self.RAM[PROGRAM_START:PROGRAM_START + len(rom)] = array('B', rom)

    def debug_dump(self, outfile):
        outfile.write("PC: 0x{:03X}\n".format(self.PC))
        outfile.write("Next instr.: 0x{:04X}\n".format(self.fetch_word()))
        outfile.write("I: 0x{:03X}\n".format(self.I))
        for i in range(NUM_REGISTERS):
            outfile.write("V{:X}: 0x{:02X}".format(i, self.V[i]))
            if i % 4 == 3:
                outfile.write('\n')
            else:
                outfile.write('\t')
        outfile.write("delay register: 0x{:02X}\n".format(self.delay_register))
        outfile.write("sound register: 0x{:02X}\n".format(self.sound_register))
        outfile.write("stack: [{}]\n".format(
            ", ".join("0x{:03X}".format(self.stack[i]) for i in range(self.SP))))
        outfile.write("\n\nRAM:\n")
        for i in range(MEMORY_SIZE):
            if i % 32 == 0:
                outfile.write("0x{:03X} - 0x{:03X}:  ".format(i, i + 31))
            outfile.write("{:02X}".format(self.RAM[i]))
            if i % 32 == 31:
                outfile.write("\n")

    def fetch(self):
        return self.RAM[self.PC], self.RAM[(self.PC + 1) % MEMORY_SIZE]

    def fetch_word(self):
        hi, lo = self.fetch()
        return hi << 8 | lo

    def tick_timers(self):
        # The delay and sound registers count down at 60Hz no matter how fast instructions run,
        # so every step spends its share of the 1/60s period.
        self.decrement_timer = max(0, self.decrement_timer - self.speed_ns)
        if self.decrement_timer == 0:
            if self.delay_register > 0:
                self.delay_register -= 1
            if self.sound_register > 0:
                self.sound_register -= 1
            self.decrement_timer = TIMER_PERIOD_NS

    def skip(self):
        self.PC = (self.PC + 2) % MEMORY_SIZE

    def execute(self, instruction):
        if self.operations[instruction.op](instruction):
            return self.screen.copy()
        return None

    def step(self, keys):
        '''
        One tick of the machine: timers, fetch, advance PC, decode and execute.
        Returns a copy of the framebuffer when the instruction changed it, else None.
        '''
        self.keys_pressed = list(keys)
        assert len(self.keys_pressed) == NUM_KEYS
        self.tick_timers()
        hi, lo = self.fetch()
        # jumps and skips overwrite this default advance
        self.PC = (self.PC + 2) % MEMORY_SIZE
        return self.execute(decode(hi, lo))

    def _nop(self, ins):
        return False

    def invalid_op(self, ins):
        logger.warning("Not implemented: 0x%02X%02X at 0x%03X", ins.hi, ins.lo,
                       (self.PC - 2) % MEMORY_SIZE)
        return False

    def _00E0(self, ins):
        # 00E0 - CLS
        # clear the screen
        self.screen.clear()
        return True

    def _00EE(self, ins):
        # 00EE - RET
        # Return from a subroutine
        if self.SP == 0:
            raise StackUnderflowException("RET at 0x{:03X} with an empty stack".format(
                (self.PC - 2) % MEMORY_SIZE))
        self.SP -= 1
        self.PC = self.stack[self.SP]
        return False

    def _1nnn(self, ins):
        # 1nnn - JP addr
        # Jump to location nnn
        self.PC = ins.nnn
        return False

    def _2nnn(self, ins):
        # 2nnn - CALL addr
        # Call subroutine at nnn
        if self.SP == STACK_SIZE:
            raise StackOverflowException("CALL at 0x{:03X} with {} return addresses pushed".format(
                (self.PC - 2) % MEMORY_SIZE, STACK_SIZE))
        self.stack[self.SP] = self.PC
        self.SP += 1
        self.PC = ins.nnn
        return False

    def _3xkk(self, ins):
        # 3xkk - SE Vx, byte
        # Skip next instruction if Vx == kk
        if self.V[ins.x] == ins.kk:
            self.skip()
        return False

    def _4xkk(self, ins):
        # 4xkk - SNE Vx, byte
        # Skip next instruction if Vx != kk
        if self.V[ins.x] != ins.kk:
            self.skip()
        return False

    def _5xy0(self, ins):
        # 5xy0 - SE Vx, Vy
        # Skip next instruction if Vx == Vy
        if self.V[ins.x] == self.V[ins.y]:
            self.skip()
        return False

    def _6xkk(self, ins):
        # 6xkk - LD Vx, byte
        # Set Vx = kk
        self.V[ins.x] = ins.kk
        return False

    def _7xkk(self, ins):
        # 7xkk - ADD Vx, byte
        # Add value in kk to vx, stores result in vx, does NOT set overflow flag
        self.V[ins.x] = (self.V[ins.x] + ins.kk) & 0xFF
        return False

    def _8xy0(self, ins):
        # 8xy0 - LD Vx, Vy
        # Set Vx = Vy
        self.V[ins.x] = self.V[ins.y]
        return False

    def _8xy1(self, ins):
        # 8xy1 - OR Vx, Vy
        # Set Vx = Vx OR Vy.
        self.V[ins.x] = self.V[ins.x] | self.V[ins.y]
        if self.vf_reset:
            self.V[0xF] = 0
        return False

    def _8xy2(self, ins):
        # 8xy2 - AND Vx, Vy
        # Set Vx = Vx AND Vy
        self.V[ins.x] = self.V[ins.x] & self.V[ins.y]
        if self.vf_reset:
            self.V[0xF] = 0
        return False

    def _8xy3(self, ins):
        # 8xy3 - XOR Vx, Vy
        # Set Vx = Vx XOR Vy
        self.V[ins.x] = self.V[ins.x] ^ self.V[ins.y]
        if self.vf_reset:
            self.V[0xF] = 0
        return False

    def _8xy4(self, ins):
        # 8xy4 - ADD Vx, Vy
        # Set Vx = Vx + Vy, set VF = carry.  Must be done in this order.
        total = self.V[ins.x] + self.V[ins.y]
        self.V[ins.x] = total & 0xFF
        self.V[0xF] = 1 if total > 0xFF else 0
        return False

    def _8xy5(self, ins):
        # 8xy5 - SUB Vx, Vy
        # Set Vx = Vx - Vy.  Set VF = NOT borrow (VF = 1 if Vx >= Vy)
        notborrow = 1 if self.V[ins.x] >= self.V[ins.y] else 0
        self.V[ins.x] = (self.V[ins.x] - self.V[ins.y]) & 0xFF
        self.V[0xF] = notborrow
        return False

    def _8xy6(self, ins):
        # 8xy6 - SHR Vx {, Vy}
        # ORIGINAL IMPLEMENTATION: copy Vy into Vx, then shift Vx right by 1.
        # MODERN IMPLEMENTATION: shift Vx right by 1 in place
        # In both, VF is set to the least significant bit of Vx before the shift
        if self.shift_vy:
            self.V[ins.x] = self.V[ins.y]
        lsb = self.V[ins.x] & 0x1
        self.V[ins.x] = self.V[ins.x] >> 1
        self.V[0xF] = lsb
        return False

    def _8xy7(self, ins):
        # 8xy7 - SUBN Vx, Vy
        # Set Vx = Vy - Vx.  Set VF = NOT borrow (VF = 1 if Vy >= Vx)
        notborrow = 1 if self.V[ins.y] >= self.V[ins.x] else 0
        self.V[ins.x] = (self.V[ins.y] - self.V[ins.x]) & 0xFF
        self.V[0xF] = notborrow
        return False

    def _8xyE(self, ins):
        # 8xyE - SHL Vx {, Vy}
        # Same ORIGINAL/MODERN split as 8xy6.
        # VF is set to the most significant bit of Vx before the shift
        if self.shift_vy:
            self.V[ins.x] = self.V[ins.y]
        msb = (self.V[ins.x] & 0x80) >> 7
        self.V[ins.x] = (self.V[ins.x] << 1) & 0xFF
        self.V[0xF] = msb
        return False

    def _9xy0(self, ins):
        # 9xy0 - SNE Vx, Vy
        # Skip next instruction if Vx != Vy
        if self.V[ins.x] != self.V[ins.y]:
            self.skip()
        return False

    def _Annn(self, ins):
        # Annn - LD I, addr
        # The value of register I is set to nnn
        self.I = ins.nnn
        return False

    def _Bnnn(self, ins):
        # Bnnn - JP V0, addr
        # The program counter is set to nnn plus the value of V0
        self.PC = (ins.nnn + self.V[0]) % MEMORY_SIZE
        return False

    def _Cxkk(self, ins):
        # Cxkk - RND Vx, byte
        # Set Vx = random byte AND kk
        self.V[ins.x] = self.rng.randrange(0, 256) & ins.kk
        return False

    def _Dxyn(self, ins):
        # Dxyn - DRW Vx, Vy, nibble
        # Draw the n-byte sprite at I with its top-left at (Vx, Vy), set VF = collision.
        # The starting position wraps; the sprite itself is clipped at the edges unless
        # wrap_sprites is set.
        x = self.V[ins.x] % self.screen.xsize
        y = self.V[ins.y] % self.screen.ysize
        collision = 0
        for i in range(ins.n):
            if y + i >= self.screen.ysize and not self.wrap_sprites:
                break
            row = self.RAM[(self.I + i) % MEMORY_SIZE]
            if self.screen.xor8px(x, y + i, row, self.wrap_sprites):
                collision = 1
        self.V[0xF] = collision
        return True

    def _Ex9E(self, ins):
        # Ex9E - SKP Vx
        # Skip next instruction if key with value of Vx is pressed
        if self.keys_pressed[self.V[ins.x] & 0xF]:
            self.skip()
        return False

    def _ExA1(self, ins):
        # ExA1 - SKNP Vx
        # Skip next instruction if key with value of Vx is NOT pressed
        if not self.keys_pressed[self.V[ins.x] & 0xF]:
            self.skip()
        return False

    def _Fx07(self, ins):
        # Fx07 - LD Vx, DT
        # The value of the Delay Timer is placed into Vx.
        self.V[ins.x] = self.delay_register
        return False

    def _Fx0A(self, ins):
        # Fx0A - LD Vx, K
        # Wait for a key press, store the value of the key in Vx.  Waiting means backing the
        # PC up so this instruction runs again next step.
        for key, pressed in enumerate(self.keys_pressed):
            if pressed:
                self.V[ins.x] = key
                return False
        self.PC = (self.PC - 2) % MEMORY_SIZE
        return False

    def _Fx15(self, ins):
        # Fx15 - LD DT, Vx
        # Set Delay Timer = Vx
        self.delay_register = self.V[ins.x]
        return False

    def _Fx18(self, ins):
        # Fx18 - LD ST, Vx
        # Set Sound Timer = Vx
        self.sound_register = self.V[ins.x]
        return False

    def _Fx1E(self, ins):
        # Fx1E - ADD I, Vx
        # I is 16 bits wide; VF = 1 if the sum carries out of 16 bits or leaves the 12-bit address space
        total = self.I + self.V[ins.x]
        self.I = total & 0xFFFF
        self.V[0xF] = 1 if total > 0xFFFF or self.I > 0x0FFF else 0
        return False

    def _Fx29(self, ins):
        # Fx29 - LD F, Vx
        # Set I = location of sprite for digit Vx ("F" = Font), 5 bytes per character
        self.I = FONT_START + 5 * self.V[ins.x]
        return False

    def _Fx33(self, ins):
        # Fx33 - LD B, Vx
        # Store binary coded decimal value of Vx in memory locations I, I+1, I+2
        val = self.V[ins.x]
        self.RAM[self.I % MEMORY_SIZE] = val // 100
        self.RAM[(self.I + 1) % MEMORY_SIZE] = (val // 10) % 10
        self.RAM[(self.I + 2) % MEMORY_SIZE] = val % 10
        return False

    def _Fx55(self, ins):
        # Fx55 - LD [I], Vx
        # Store registers V0 through Vx in memory starting at location I
        # Note that in the original CHIP-8 on the COSMAC VIP, I was incremented during this
        # loop.  See: https://laurencescotford.com/chip-8-on-the-cosmac-vip-loading-and-saving-variables/
        # Modern interpreters leave I alone, which is the default here.
        for i in range(ins.x + 1):
            self.RAM[(self.I + i) % MEMORY_SIZE] = self.V[i]
        if self.increment_i:
            self.I = (self.I + ins.x + 1) & 0xFFFF
        return False

    def _Fx65(self, ins):
        # Fx65 - LD Vx, [I]
        # Read values from memory starting at location I into registers V0 through Vx
        for i in range(ins.x + 1):
            self.V[i] = self.RAM[(self.I + i) % MEMORY_SIZE]
        if self.increment_i:
            self.I = (self.I + ins.x + 1) & 0xFFFF
        return False
