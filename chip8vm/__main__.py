import sys

from chip8vm.host import main

if __name__ == "__main__":
    sys.exit(main())
