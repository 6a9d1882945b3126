import argparse
import datetime
import logging
import sys
from pathlib import Path

import pygame

from chip8vm.computer import DEFAULT_FREQUENCY, MAX_FREQUENCY, NUM_KEYS, PROGRAM_START, C8Computer
from chip8vm.errors import C8Exception
from chip8vm.screen import SCREEN_HEIGHT, SCREEN_WIDTH

logger = logging.getLogger(__name__)

SCALE_FACTOR = 8
PIXEL_OFF_COLOR = (0, 0, 0)
PIXEL_ON_COLOR = (255, 255, 255)
CAPTION = "CHIP-8"
# Never run more than this many instructions between two looks at the event queue.
MAX_STEPS_PER_FRAME = 100


# The keyboard layout for the CHIP-8 assumes:
#   1 2 3 C
#   4 5 6 D
#   7 8 9 E
#   A 0 B F
#
# We map this to the following keys on our keyboard:
#   1 2 3 4
#   Q W E R
#   A S D F
#   Z X C V

KEYMAPPING = {
    pygame.K_1: 0x01,
    pygame.K_2: 0x02,
    pygame.K_3: 0x03,
    pygame.K_4: 0x0C,
    pygame.K_q: 0x04,
    pygame.K_w: 0x05,
    pygame.K_e: 0x06,
    pygame.K_r: 0x0D,
    pygame.K_a: 0x07,
    pygame.K_s: 0x08,
    pygame.K_d: 0x09,
    pygame.K_f: 0x0E,
    pygame.K_z: 0x0A,
    pygame.K_x: 0x00,
    pygame.K_c: 0x0B,
    pygame.K_v: 0x0F
}


class C8Keypad:

    def __init__(self):
        self.keys_pressed = [False] * NUM_KEYS

    def handle_event(self, event):
        if event.type == pygame.KEYDOWN and event.key in KEYMAPPING:
            self.keys_pressed[KEYMAPPING[event.key]] = True
        elif event.type == pygame.KEYUP and event.key in KEYMAPPING:
            self.keys_pressed[KEYMAPPING[event.key]] = False

    def snapshot(self):
        return list(self.keys_pressed)


class C8Display:
    '''
    Paints framebuffers handed back by the engine into a pygame window.
    '''

    def __init__(self, window, scale=SCALE_FACTOR):
        self.window = window
        self.scale = scale
        self.num_renders = 0
        self.render_time_ps = 0

    def draw(self, screen):
        self.num_renders += 1
        start_time = datetime.datetime.now()
        self.window.fill(PIXEL_OFF_COLOR)
        for y, row in enumerate(screen.rows()):
            for x, px in enumerate(row):
                if px:
                    self.window.fill(PIXEL_ON_COLOR,
                                     pygame.Rect(x * self.scale, y * self.scale, self.scale, self.scale))
        pygame.display.flip()
        self.render_time_ps += (datetime.datetime.now() - start_time).total_seconds()


def positive_int(value):
    number = int(value, 0)
    if number <= 0:
        raise argparse.ArgumentTypeError("{} is not a positive integer".format(value))
    return number


def frequency(value):
    number = positive_int(value)
    if number > MAX_FREQUENCY:
        raise argparse.ArgumentTypeError("{} is above the {} Hz limit".format(value, MAX_FREQUENCY))
    return number


def build_parser():
    parser = argparse.ArgumentParser(prog="chip8vm", description="Run a CHIP-8 program")
    parser.add_argument("rom", type=Path, help="A compiled CHIP-8 program to load")
    parser.add_argument("--freq", type=frequency, default=DEFAULT_FREQUENCY,
                        help="Instruction clock in Hz (default: %(default)s)")
    parser.add_argument("--scale", type=positive_int, default=SCALE_FACTOR,
                        help="Window pixels per CHIP-8 pixel (default: %(default)s)")
    parser.add_argument("--wrap-sprites", action="store_true",
                        help="Wrap sprites around the screen edges instead of clipping them")
    parser.add_argument("--shift-vy", action="store_true",
                        help="8xy6/8xyE shift Vy into Vx, as the COSMAC VIP did")
    parser.add_argument("--increment-i", action="store_true",
                        help="Fx55/Fx65 advance I, as the COSMAC VIP did")
    parser.add_argument("--vf-reset", action="store_true",
                        help="8xy1/8xy2/8xy3 clear VF, as the COSMAC VIP did")
    parser.add_argument("--dump", type=Path, default=Path("debug.txt"),
                        help="Where to write the machine state on exit (default: %(default)s)")
    parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging")
    return parser


def load_rom(path):
    return Path(path).read_bytes()


def build_computer(args, rom):
    c8 = C8Computer(args.freq, wrap_sprites=args.wrap_sprites, shift_vy=args.shift_vy,
                    increment_i=args.increment_i, vf_reset=args.vf_reset)
    c8.load(rom)
    return c8


def write_dump(c8, path):
    with open(path, "w") as outfile:
        c8.debug_dump(outfile)
    logger.info("Machine state written to %s", path)


def steps_due(elapsed, scheduled, speed):
    '''
    How many steps of length speed fit between the time the next step was scheduled for and
    elapsed, both in seconds since the run started.  Returns (steps, new schedule time).
    '''
    due = min(max(0, int((elapsed - scheduled) / speed)), MAX_STEPS_PER_FRAME)
    scheduled += due * speed
    if elapsed - scheduled > MAX_STEPS_PER_FRAME * speed:
        # fell too far behind; don't try to catch up
        scheduled = elapsed
    return due, scheduled


def run(c8, display, keypad, dump_path):
    speed = c8.speed
    buzzing = False
    num_instr = 0
    start_time = datetime.datetime.now()
    scheduled = 0.0

    running = True
    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
                write_dump(c8, dump_path)
            else:
                keypad.handle_event(event)
        if not running:
            break

        elapsed = (datetime.datetime.now() - start_time).total_seconds()
        due, scheduled = steps_due(elapsed, scheduled, speed)
        try:
            for _ in range(due):
                screen = c8.step(keypad.snapshot())
                num_instr += 1
                if screen is not None:
                    display.draw(screen)
        except Exception:
            write_dump(c8, dump_path)
            raise

        if c8.buzzer_active != buzzing:
            buzzing = c8.buzzer_active
            logger.debug("Buzzer %s", "on" if buzzing else "off")
            pygame.display.set_caption(CAPTION + (" *BEEP*" if buzzing else ""))

    duration = (datetime.datetime.now() - start_time).total_seconds()
    logger.info("Duration: %s sec.", duration)
    if duration > 0:
        logger.info("Performance: %s instructions per second", num_instr / duration)
    logger.info("Screen num renders: %s", display.num_renders)
    if display.num_renders:
        logger.info("Average microseconds per render: %s",
                    (1000000 * display.render_time_ps) / display.num_renders)
    return num_instr


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO,
                        format="[%(levelname)s] %(name)s: %(message)s", stream=sys.stdout)

    try:
        rom = load_rom(args.rom)
        c8 = build_computer(args, rom)
    except (OSError, C8Exception) as exc:
        logger.error("Cannot load ROM: %s", exc)
        return 1
    logger.info("Loaded %s (%d bytes) at 0x%03X", args.rom, len(rom), PROGRAM_START)

    pygame.init()
    try:
        window = pygame.display.set_mode((SCREEN_WIDTH * args.scale, SCREEN_HEIGHT * args.scale))
        pygame.display.set_caption(CAPTION)
        window.fill(PIXEL_OFF_COLOR)
        display = C8Display(window, args.scale)
        logger.info("Running at %d Hz", args.freq)
        run(c8, display, C8Keypad(), args.dump)
    finally:
        pygame.quit()
    return 0
