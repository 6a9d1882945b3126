class C8Exception(Exception):
    pass


class StackOverflowException(C8Exception):
    pass


class StackUnderflowException(C8Exception):
    pass


class RomTooLargeException(C8Exception):
    pass
