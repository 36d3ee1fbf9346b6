"""
The simulated machine: memory, registers and the fetch-decode-execute loop.
"""

from assembler import DEFAULT_REVISION, assemble_lines, check_revision, load_optab
from cpu import (
    MEMORY_SIZE, OPERAND_BITS, OPERAND_MASK, STACK_BASE, START_ADDRESS,
    Memory, Registers, decode_word, to_signed,
)
from errors import AddressOutOfRangeError, MachineError, UnknownOpcodeError
from instructions import build_dispatch


def console_input():
    """Read one decimal word from the console."""
    return int(input("INPUT: "), 10)


def scripted_input(values):
    """Return an input source that hands out values in order."""
    remaining = iter(values)

    def read():
        try:
            return int(next(remaining))
        except StopIteration:
            raise MachineError("Input exhausted")
    return read


class VirtualMachine:
    def __init__(self, memory_size=MEMORY_SIZE, stack_base=STACK_BASE,
                 start_address=START_ADDRESS, revision=DEFAULT_REVISION,
                 input_source=None, output_sink=None, trace=None):
        if not 0 < memory_size <= OPERAND_MASK + 1:
            raise ValueError(f"memory_size must be in (0, {OPERAND_MASK + 1}], got {memory_size}")
        if not 0 <= start_address < memory_size:
            raise ValueError(f"start_address {start_address} outside memory of {memory_size} words")
        if not 0 <= stack_base < memory_size:
            raise ValueError(f"stack_base {stack_base} outside memory of {memory_size} words")

        self.memory_size = memory_size
        self.stack_base = stack_base
        self.start_address = start_address
        self.revision = check_revision(revision)
        self.optab = load_optab(revision=revision)
        self.dispatch = build_dispatch(optab=self.optab)
        self.input_tag = self.optab['INPUT']['opcode'] << OPERAND_BITS
        self.output_tag = self.optab['OUTPUT']['opcode'] << OPERAND_BITS

        self.input_source = input_source or console_input
        self.output_sink = output_sink
        self.trace = trace

        self.memory = Memory(memory_size, stack_base)
        self.cpu = Registers(stack_base)
        self.initialize()

    def log(self, message):
        if self.trace:
            self.trace(message)

    @property
    def halted(self):
        return self.cpu.halted

    def initialize(self):
        """Zero memory, the code buffer and the registers."""
        self.memory.clear()
        self.machine_code = [0] * self.memory_size
        self.code_length = 0
        self.program = None
        self.cpu.reset(self.stack_base)
        self.outputs = []
        self.error = None
        self.steps = 0

    def set_program(self, program):
        self.machine_code = [0] * self.memory_size
        self.machine_code[:program.code_length] = program.machine_code
        self.code_length = program.code_length
        self.program = program

    def assemble(self, lines):
        """Assemble source lines; nothing is kept if assembly fails."""
        program = assemble_lines(lines, self.optab, self.start_address, self.memory_size)
        self.set_program(program)
        self.log(f"Assembled {program.code_length} words, {len(program.symtab)} symbols")
        return program

    def load(self, program=None):
        """Copy the machine code into memory and point PC at the start address."""
        if program is not None:
            if program.origin != self.start_address:
                raise ValueError(
                    f"Program assembled for {program.origin:03X}, machine starts at {self.start_address:03X}")
            self.set_program(program)
        end = self.start_address + self.code_length
        if end > self.memory_size:
            raise AddressOutOfRangeError(end - 1, self.memory_size)

        self.log(f"Loading Program: {self.code_length} instructions long.")
        self.memory.load(self.machine_code[:self.code_length], self.start_address)
        self.cpu.PC = self.start_address
        self.cpu.halted = False
        self.error = None

    def assemble_and_load(self, lines):
        program = self.assemble(lines)
        self.load()
        return program

    def fetch(self):
        cpu = self.cpu
        cpu.MAR = cpu.PC                    # MAR <- PC
        cpu.IR = self.memory[cpu.MAR]       # IR <- M[MAR]
        cpu.PC += 1                         # PC <- PC + 1

    def decode(self):
        """Split IR; leaves the operand in MAR and returns the opcode tag."""
        opcode, self.cpu.MAR = decode_word(self.cpu.IR)
        return opcode << OPERAND_BITS

    def read_input(self):
        """Fetch one word from the input source; any failure is a machine fault."""
        try:
            return int(self.input_source())
        except MachineError:
            raise
        except (ValueError, TypeError, EOFError, OSError) as err:
            raise MachineError(f"Input failed: {err}") from err

    def execute(self, op_code):
        unit = self.dispatch.get(op_code)
        if unit is None:
            raise UnknownOpcodeError(op_code, self.cpu.PC - 1)
        if op_code == self.input_tag:
            self.cpu.INPUT = self.read_input()
        self.log(unit(self.cpu, self.memory))
        if op_code == self.output_tag:
            self.outputs.append(self.cpu.OUTPUT)
            if self.output_sink:
                self.output_sink(self.cpu.OUTPUT)

    def step(self):
        """Run one instruction and return its opcode tag."""
        if self.cpu.halted:
            raise MachineError("Machine is halted", self.cpu.PC)
        pc = self.cpu.PC
        try:
            self.fetch()
            op_code = self.decode()
            self.log(f"PC: {pc:03X} IR: {self.cpu.IR:04X}")
            self.execute(op_code)
        except MachineError as err:
            if err.pc is None:
                err.pc = pc
            self.cpu.halted = True
            self.error = err
            self.log(f"FAULT at {pc:03X}: {err}")
            raise
        self.steps += 1
        return op_code

    def run(self):
        """Execute until HALT; returns the number of instructions executed."""
        self.log(f"RUNNING: start_address: {self.cpu.PC:03X}")
        first = self.steps
        while not self.cpu.halted:
            self.step()
        return self.steps - first

    def symbol_address(self, label):
        return self.program.symtab[label]

    def read_symbol(self, label):
        """Signed value of the word at a label of the loaded program."""
        return to_signed(self.memory[self.symbol_address(label)])
