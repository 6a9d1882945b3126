import enum
from collections import namedtuple


class Op(enum.Enum):
    NOP = "0000"
    CLS = "00E0"
    RET = "00EE"
    JP = "1nnn"
    CALL = "2nnn"
    SE_BYTE = "3xkk"
    SNE_BYTE = "4xkk"
    SE_REG = "5xy0"
    LD_BYTE = "6xkk"
    ADD_BYTE = "7xkk"
    LD_REG = "8xy0"
    OR = "8xy1"
    AND = "8xy2"
    XOR = "8xy3"
    ADD_REG = "8xy4"
    SUB = "8xy5"
    SHR = "8xy6"
    SUBN = "8xy7"
    SHL = "8xyE"
    SNE_REG = "9xy0"
    LD_I = "Annn"
    JP_V0 = "Bnnn"
    RND = "Cxkk"
    DRW = "Dxyn"
    SKP = "Ex9E"
    SKNP = "ExA1"
    LD_VX_DT = "Fx07"
    LD_VX_K = "Fx0A"
    LD_DT_VX = "Fx15"
    LD_ST_VX = "Fx18"
    ADD_I = "Fx1E"
    LD_F = "Fx29"
    LD_B = "Fx33"
    LD_MEM_VX = "Fx55"
    LD_VX_MEM = "Fx65"
    UNKNOWN = "????"


# hi and lo are the raw instruction bytes; everything else is derived from them.
Instruction = namedtuple("Instruction", ["op", "hi", "lo", "x", "y", "n", "kk", "nnn"])

# One operation per high-order nibble for 1, 2, 3, 4, 6, 7, A, B, C and D.
_SINGLE_OPERATIONS = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_BYTE,
    0x4: Op.SNE_BYTE,
    0x6: Op.LD_BYTE,
    0x7: Op.ADD_BYTE,
    0xA: Op.LD_I,
    0xB: Op.JP_V0,
    0xC: Op.RND,
    0xD: Op.DRW,
}

# opcodes beginning with 8 are determined by the least-significant nibble
_8_OPERATIONS = {
    0x0: Op.LD_REG,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_REG,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

# opcodes beginning with E and F are determined by the least-significant byte
_E_OPERATIONS = {
    0x9E: Op.SKP,
    0xA1: Op.SKNP,
}

_F_OPERATIONS = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_VX_K,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I,
    0x29: Op.LD_F,
    0x33: Op.LD_B,
    0x55: Op.LD_MEM_VX,
    0x65: Op.LD_VX_MEM,
}


def extract_nibbles(hi, lo):
    return (hi >> 4) & 0xF, hi & 0xF, (lo >> 4) & 0xF, lo & 0xF


def extract_12_bits(n0, n1, n2):
    return (n0 << 8) | (n1 << 4) | n2


def _lookup(n0, n1, n3, kk):
    if n0 in _SINGLE_OPERATIONS:
        return _SINGLE_OPERATIONS[n0]
    if n0 == 0x0:
        if n1 == 0x0 and kk == 0x00:
            return Op.NOP
        if n1 == 0x0 and kk == 0xE0:
            return Op.CLS
        if n1 == 0x0 and kk == 0xEE:
            return Op.RET
        return Op.UNKNOWN
    if n0 == 0x5:
        return Op.SE_REG if n3 == 0x0 else Op.UNKNOWN
    if n0 == 0x9:
        return Op.SNE_REG if n3 == 0x0 else Op.UNKNOWN
    if n0 == 0x8:
        return _8_OPERATIONS.get(n3, Op.UNKNOWN)
    if n0 == 0xE:
        return _E_OPERATIONS.get(kk, Op.UNKNOWN)
    return _F_OPERATIONS.get(kk, Op.UNKNOWN)


def decode(hi, lo):
    '''
    Instructions have one of 6 patterns:
    All 4 nibbles fixed:
        00E0, 00EE
    Operation + nnn (address)
        1nnn, 2nnn, Annn, Bnnn
    Operation + Vx + kk (byte)
        3xkk, 4xkk, 6xkk, 7xkk, Cxkk
    Operation + Vx + Vy + nibble-type
        5xy0, 8xy0 .. 8xy7, 8xyE, 9xy0
    Operation + Vx + Vy + n (nibble)
        Dxyn
    Operation + Vx + byte-type
        Ex9E, ExA1, Fx07, Fx0A, Fx15, Fx18, Fx1E, Fx29, Fx33, Fx55, Fx65

    Every way of reading the operands is computed up front; each operation
    uses only the fields it needs.
    '''
    n0, n1, n2, n3 = extract_nibbles(hi, lo)
    op = _lookup(n0, n1, n3, lo)
    return Instruction(op, hi, lo, n1, n2, n3, lo, extract_12_bits(n1, n2, n3))
