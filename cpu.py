"""
Register set and word memory of the simulated accumulator machine.
Words are 16 bits: a 4-bit opcode over a 12-bit operand.
"""

import pandas as pd

from errors import AddressOutOfRangeError

# 12 bits of operand address 4096 words
MEMORY_SIZE = 4096
STACK_BASE = 2000
START_ADDRESS = 0

WORD_MASK = 0xFFFF
SIGN_BIT = 0x8000
OPCODE_MASK = 0xF000
OPERAND_MASK = 0x0FFF
OPERAND_BITS = 12


def to_word(value):
    """Two's-complement 16-bit pattern of value."""
    return value & WORD_MASK


def to_signed(word):
    word &= WORD_MASK
    return word - (WORD_MASK + 1) if word & SIGN_BIT else word


def decode_word(word):
    """Split a machine word into (opcode, operand)."""
    return (word & OPCODE_MASK) >> OPERAND_BITS, word & OPERAND_MASK


class Registers:
    def __init__(self, sp=STACK_BASE):
        self.reset(sp)

    def reset(self, sp=STACK_BASE):
        """Zero every register and point SP at the stack base"""
        self.AC = 0
        self.PC = 0
        self.MAR = 0
        self.MBR = 0
        self.IR = 0
        self.SP = sp
        self.INPUT = 0
        self.OUTPUT = 0
        self.halted = False

    def snapshot(self):
        return {
            "AC": self.AC, "PC": self.PC, "MAR": self.MAR, "MBR": self.MBR,
            "IR": self.IR, "SP": self.SP, "INPUT": self.INPUT, "OUTPUT": self.OUTPUT,
        }

    def __repr__(self):
        fields = " ".join(f"{name}={value}" for name, value in self.snapshot().items())
        return f"<Registers {fields}>"


class Memory:
    """Word-addressed memory; words [stack_base, size) hold the runtime stack."""

    def __init__(self, size=MEMORY_SIZE, stack_base=STACK_BASE):
        self.size = size
        self.stack_base = stack_base
        self.words = [0] * size

    def clear(self):
        self.words = [0] * self.size

    def check(self, address):
        if not 0 <= address < self.size:
            raise AddressOutOfRangeError(address, self.size)
        return address

    def __len__(self):
        return self.size

    def __getitem__(self, address):
        return self.words[self.check(address)]

    def __setitem__(self, address, value):
        self.words[self.check(address)] = to_word(value)

    def load(self, words, start=0):
        """Copy a block of words into memory starting at start"""
        end = start + len(words)
        if start < 0 or end > self.size:
            raise AddressOutOfRangeError(end - 1 if end > self.size else start, self.size)
        for offset, word in enumerate(words):
            self.words[start + offset] = to_word(word)

    def dump(self, start=0, stop=None, nonzero=False):
        """Return a DataFrame view of memory words in [start, stop)."""
        stop = self.size if stop is None else stop
        self.check(start)
        if stop != start:
            self.check(stop - 1)
        rows = [
            {"address": address, "hex": f"{self.words[address]:04X}",
             "value": to_signed(self.words[address])}
            for address in range(start, stop)
            if not nonzero or self.words[address]
        ]
        return pd.DataFrame(rows, columns=["address", "hex", "value"])
