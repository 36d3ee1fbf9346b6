"""
Instruction semantics, one function per opcode.

Every unit takes the register set and memory, applies the register transfers
of its instruction and returns a short trace note. On entry MAR holds the
12-bit operand field of the instruction being executed.
"""

from assembler import DEFAULT_REVISION, load_optab
from cpu import OPERAND_BITS, to_signed, to_word
from errors import AddressOutOfRangeError

SKIP_IF_NEGATIVE = 0x000
SKIP_IF_ZERO = 0x400
SKIP_IF_POSITIVE = 0x800


def load(cpu, mem):
    cpu.MBR = mem[cpu.MAR]          # MBR <- M[MAR]
    cpu.AC = to_signed(cpu.MBR)     # AC <- MBR
    return f"load -> AC == {cpu.AC}"


def store(cpu, mem):
    cpu.MBR = to_word(cpu.AC)       # MBR <- AC
    mem[cpu.MAR] = cpu.MBR          # M[MAR] <- MBR
    return f"store -> M[{cpu.MAR:03X}] == {cpu.MBR:04X}"


def add(cpu, mem):
    cpu.MBR = mem[cpu.MAR]
    cpu.AC = cpu.AC + to_signed(cpu.MBR)
    return f"add -> AC == {cpu.AC}"


def sub(cpu, mem):
    cpu.MBR = mem[cpu.MAR]
    cpu.AC = cpu.AC - to_signed(cpu.MBR)
    return f"sub -> AC == {cpu.AC}"


def input_word(cpu, mem):
    cpu.AC = cpu.INPUT
    return f"input -> AC == {cpu.AC}"


def output_word(cpu, mem):
    cpu.OUTPUT = cpu.AC
    return f"output -> {cpu.OUTPUT}"


def halt(cpu, mem):
    cpu.halted = True
    return "!HALT!"


def skipcond(cpu, mem):
    """Skip the next instruction when AC matches the condition in MAR.

    000 skips on AC < 0, 400 on AC == 0 and 800 on AC > 0.
    """
    condition = cpu.MAR
    if condition == SKIP_IF_NEGATIVE:
        taken = cpu.AC < 0
    elif condition == SKIP_IF_ZERO:
        taken = cpu.AC == 0
    elif condition == SKIP_IF_POSITIVE:
        taken = cpu.AC > 0
    else:
        return f"skipcond {condition:03X} -> unknown condition, no skip"
    if taken:
        cpu.PC += 1
    return f"skipcond {condition:03X} -> AC == {cpu.AC}, {'skip' if taken else 'no skip'}"


def jump(cpu, mem):
    cpu.PC = cpu.MAR
    return f"jump -> PC == {cpu.PC:03X}"


def push_address(cpu, mem):
    """Claim the next free stack slot and return its address."""
    if not mem.stack_base <= cpu.SP < mem.size:
        raise AddressOutOfRangeError(cpu.SP, mem.size, low=mem.stack_base)
    address = cpu.SP
    cpu.SP += 1
    return address


def pop_address(cpu, mem):
    """Release the top stack slot and return its address."""
    if not mem.stack_base < cpu.SP <= mem.size:
        raise AddressOutOfRangeError(cpu.SP - 1, mem.size, low=mem.stack_base)
    cpu.SP -= 1
    return cpu.SP


def call(cpu, mem):
    # the labelled word is the procedure marker, execution starts after it
    target = cpu.MAR + 1
    cpu.MBR = cpu.PC                    # return address, already past the CALL
    cpu.MAR = push_address(cpu, mem)
    mem[cpu.MAR] = cpu.MBR
    cpu.PC = target
    return f"call -> PC == {cpu.PC:03X}, return {cpu.MBR:03X}"


def ret(cpu, mem):
    cpu.MAR = pop_address(cpu, mem)
    cpu.MBR = mem[cpu.MAR]
    cpu.PC = cpu.MBR
    return f"ret -> PC == {cpu.PC:03X}"


def load_indirect(cpu, mem):
    cpu.MBR = mem[cpu.MAR]              # pointer
    cpu.MBR = mem[cpu.MBR]
    cpu.AC = to_signed(cpu.MBR)
    return f"loadi -> AC == {cpu.AC}"


def store_indirect(cpu, mem):
    pointer = mem[cpu.MAR]
    mem.check(pointer)
    cpu.MBR = to_word(cpu.AC)
    mem[pointer] = cpu.MBR
    return f"storei -> M[{pointer:03X}] == {cpu.MBR:04X}"


def push(cpu, mem):
    address = push_address(cpu, mem)
    mem[address] = to_word(cpu.AC)
    return f"push -> SP == {cpu.SP}"


def pop(cpu, mem):
    mem.check(cpu.MAR)
    address = pop_address(cpu, mem)
    cpu.MBR = mem[address]
    mem[cpu.MAR] = cpu.MBR
    return f"pop -> M[{cpu.MAR:03X}] == {cpu.MBR:04X}, SP == {cpu.SP}"


UNITS = {
    'LOAD': load,
    'STORE': store,
    'ADD': add,
    'SUB': sub,
    'INPUT': input_word,
    'OUTPUT': output_word,
    'HALT': halt,
    'SKIPCOND': skipcond,
    'JMP': jump,
    'CALL': call,
    'LOADI': load_indirect,
    'RET': ret,
    'STOREI': store_indirect,
    'PUSH': push,
    'POP': pop,
}


def build_dispatch(revision=DEFAULT_REVISION, optab=None):
    """Map opcode tags (opcode << 12) to their units for one ISA revision."""
    optab = load_optab(revision=revision) if optab is None else optab
    return {
        entry['opcode'] << OPERAND_BITS: UNITS[name]
        for name, entry in optab.items()
        if entry['operand'] != 'data'
    }
