from array import array

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32

PIXEL_OFF = 0
PIXEL_ON = 1


class C8Screen:
    '''
    The 64x32 monochrome framebuffer.  Each cell of vram holds PIXEL_OFF or PIXEL_ON,
    row-major starting from the top-left corner.
    '''

    def __init__(self, xsize=SCREEN_WIDTH, ysize=SCREEN_HEIGHT):
        self.xsize = xsize
        self.ysize = ysize
        self.vram = array('B', [PIXEL_OFF] * (self.xsize * self.ysize))

    def clear(self):
        for i in range(self.xsize * self.ysize):
            self.vram[i] = PIXEL_OFF

    def getpx(self, x, y):
        assert 0 <= x < self.xsize
        assert 0 <= y < self.ysize
        return self.vram[(y * self.xsize) + x]

    def setpx(self, x, y, val):
        assert val in (PIXEL_OFF, PIXEL_ON)
        assert 0 <= x < self.xsize
        assert 0 <= y < self.ysize
        self.vram[(y * self.xsize) + x] = val

    def xor8px(self, x, y, val, wrap=False):
        '''
        XORs the 8 cells from (x,y) to (x+7,y) with the bits in val, most significant bit
        leftmost.  Returns True if any cell that was on got turned off.

        Without wrap, cells past the right edge and rows past the bottom edge are clipped.
        With wrap, they come back in on the opposite edge.
        '''
        assert 0 <= val <= 0xFF
        assert 0 <= x
        assert 0 <= y

        if wrap:
            y %= self.ysize
        elif y >= self.ysize:
            return False

        collision = False
        for i in range(8):
            px = x + i
            if px >= self.xsize:
                if not wrap:
                    break
                px %= self.xsize
            if (val << i) & 0x80:
                # 0 means do nothing, so only treat the 1 case
                vramcell = (y * self.xsize) + px
                if self.vram[vramcell] == PIXEL_ON:
                    collision = True
                    self.vram[vramcell] = PIXEL_OFF
                else:
                    self.vram[vramcell] = PIXEL_ON
        return collision

    def rows(self):
        for y in range(self.ysize):
            start = y * self.xsize
            yield self.vram[start:start + self.xsize].tolist()

    def copy(self):
        other = C8Screen(self.xsize, self.ysize)
        other.vram = array('B', self.vram)
        return other

    def lit_pixels(self):
        return sum(self.vram)

    def __eq__(self, other):
        if not isinstance(other, C8Screen):
            return NotImplemented
        return (self.xsize, self.ysize) == (other.xsize, other.ysize) and self.vram == other.vram

    def __str__(self):
        return "\n".join("".join("#" if px else "." for px in row) for row in self.rows())
