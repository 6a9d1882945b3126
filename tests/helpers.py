NO_KEYS = [False] * 16


def words_to_rom(words):
    rom = bytearray()
    for word in words:
        rom.append(word >> 8)
        rom.append(word & 0xFF)
    return bytes(rom)


def run_steps(c8, count, keys=NO_KEYS):
    result = None
    for _ in range(count):
        result = c8.step(keys)
    return result


class FixedRandom:
    '''Stands in for the random module; always produces the same byte.'''

    def __init__(self, value):
        self.value = value

    def randrange(self, start, stop):
        assert start <= self.value < stop
        return self.value
