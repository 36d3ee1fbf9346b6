"""
Error classes for the assembler and the simulated machine.
Assembly errors derive from ValueError, run-time errors from RuntimeError.
"""


class AssemblyError(ValueError):
    """Base class for problems found while assembling a source file."""

    def __init__(self, msg, line_number=None):
        self.msg = msg
        self.line_number = line_number
        super().__init__(msg)

    def __str__(self):
        if self.line_number is not None:
            return f"line {self.line_number}: {self.msg}"
        return self.msg


class MalformedLineError(AssemblyError):
    def __init__(self, line_number, reason="malformed line"):
        self.reason = reason
        super().__init__(reason, line_number)


class UndefinedSymbolError(AssemblyError):
    def __init__(self, symbol, line_number):
        self.symbol = symbol
        super().__init__(f"Undefined symbol: {symbol}", line_number)


class DuplicateLabelError(AssemblyError):
    def __init__(self, label, line_number):
        self.label = label
        super().__init__(f"Duplicate symbol: {label}", line_number)


class UnknownMnemonicError(AssemblyError):
    def __init__(self, mnemonic, line_number):
        self.mnemonic = mnemonic
        super().__init__(f"Unknown mnemonic: {mnemonic}", line_number)


class MachineError(RuntimeError):
    """Base class for faults raised while the machine is running."""

    def __init__(self, msg, pc=None):
        self.msg = msg
        self.pc = pc
        super().__init__(msg)


class UnknownOpcodeError(MachineError):
    def __init__(self, opcode, pc):
        self.opcode = opcode
        super().__init__(f"Unknown opcode {opcode:04X} at {pc:03X}", pc)


class AddressOutOfRangeError(AssemblyError, MachineError):
    """An address fell outside [low, limit).

    Raised by the assembler (symbol or program too large for memory) and by
    the machine (bad pointer, stack overflow or underflow, runaway PC).
    """

    def __init__(self, address, limit, line_number=None, pc=None, low=0):
        self.address = address
        self.limit = limit
        self.low = low
        AssemblyError.__init__(
            self, f"Address {address} out of range [{low}, {limit})", line_number)
        self.pc = pc
