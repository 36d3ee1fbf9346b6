#!/usr/bin/env python3
"""
test_machine.py  -  Tests for the VirtualMachine fetch-decode-execute loop
==========================================================================
Run:  python3 -m unittest test_machine [-v]
"""

import os, sys, unittest
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import textwrap
from pathlib import Path

from cpu import to_signed
from errors import (
    AddressOutOfRangeError, MachineError, UndefinedSymbolError, UnknownOpcodeError,
)
from machine import VirtualMachine, scripted_input


def src(text):
    return textwrap.dedent(text).strip('\n').splitlines()

def run(text, inputs=(), **kw):
    """Assemble, load and run a source string; return the machine."""
    vm = VirtualMachine(input_source=scripted_input(inputs), **kw)
    vm.assemble_and_load(src(text))
    vm.run()
    return vm


# ─────────────────────────────────────────────────────────────────────────────
class TestScenarios(unittest.TestCase):

    def test_add_two(self):
        vm = run('''
            LOAD X
            ADD Y
            STORE Z
            HALT
            X, DEC 5
            Y, DEC 3
            Z, DEC 0
            END
        ''')
        self.assertEqual(vm.read_symbol('Z'), 8)
        self.assertEqual(vm.cpu.AC, 8)

    def test_call_and_return(self):
        vm = run('''
            CALL SUB
            HALT
            SUB, PROC
            ADD ONE
            RET
            ONE, DEC 1
            END
        ''')
        self.assertEqual(vm.cpu.AC, 1)
        # halted at address 1, the word after CALL
        self.assertEqual(vm.cpu.PC, 2)
        self.assertEqual(vm.cpu.SP, vm.stack_base)
        self.assertEqual(vm.steps, 4)

    def test_skipcond_skips_output(self):
        vm = run('''
            LOAD NEG
            SKIPCOND 000
            OUTPUT
            HALT
            NEG, DEC -1
            END
        ''')
        self.assertEqual(vm.outputs, [])
        self.assertEqual(vm.cpu.AC, -1)

    def test_skipcond_falls_through(self):
        vm = run('''
            LOAD POS
            SKIPCOND 000
            OUTPUT
            HALT
            POS, DEC 4
        ''')
        self.assertEqual(vm.outputs, [4])

    def test_undefined_label_loads_nothing(self):
        vm = VirtualMachine()
        with self.assertRaises(UndefinedSymbolError):
            vm.assemble_and_load(['LOAD MISSING', 'HALT'])
        self.assertIsNone(vm.program)
        self.assertEqual(vm.code_length, 0)
        self.assertEqual(vm.memory[0], 0)

    def test_push_push_pop_pop(self):
        vm = run('''
            LOAD A
            PUSH
            LOAD B
            PUSH
            POP Y
            POP X
            HALT
            A, DEC 11
            B, DEC 22
            X, DEC 0
            Y, DEC 0
        ''')
        self.assertEqual(vm.cpu.SP, vm.stack_base)
        self.assertEqual((vm.read_symbol('X'), vm.read_symbol('Y')), (11, 22))

    def test_push_then_pop_restores_value(self):
        vm = run('''
            LOAD V
            PUSH
            LOAD ZERO
            POP V
            LOAD V
            HALT
            V, DEC -300
            ZERO, DEC 0
        ''')
        self.assertEqual(vm.cpu.AC, -300)


# ─────────────────────────────────────────────────────────────────────────────
class TestPrograms(unittest.TestCase):

    SAMPLES = Path(__file__).parent / 'txt_files'

    def sample(self, name, inputs=()):
        vm = VirtualMachine(input_source=scripted_input(inputs))
        vm.assemble_and_load((self.SAMPLES / name).read_text().splitlines())
        vm.run()
        return vm

    def test_add_two(self):      self.assertEqual(self.sample('add_two.asm').outputs, [8])
    def test_countdown(self):    self.assertEqual(self.sample('countdown.asm').outputs, [3, 2, 1])
    def test_subroutine(self):   self.assertEqual(self.sample('subroutine.asm', [21]).outputs, [42])
    def test_indirect(self):     self.assertEqual(self.sample('indirect.asm').outputs, [42])

    def test_stack(self):
        vm = self.sample('stack.asm')
        self.assertEqual((vm.read_symbol('X'), vm.read_symbol('Y')), (11, 22))


# ─────────────────────────────────────────────────────────────────────────────
class TestCycle(unittest.TestCase):

    def test_fetch_decode(self):
        vm = VirtualMachine()
        vm.assemble_and_load(['LOAD X', 'HALT', 'X, DEC 9'])
        vm.fetch()
        self.assertEqual((vm.cpu.MAR, vm.cpu.IR, vm.cpu.PC), (0, 0x1002, 1))
        self.assertEqual(vm.decode(), 0x1000)
        self.assertEqual(vm.cpu.MAR, 2)

    def test_ir_and_mar_after_step(self):
        vm = VirtualMachine()
        vm.assemble_and_load(['LOAD X', 'ADD X', 'HALT', 'X, DEC 9'])
        vm.step()
        vm.step()
        self.assertEqual(vm.cpu.IR >> 12, 0x3)
        self.assertEqual(vm.cpu.MAR, vm.cpu.IR & 0x0FFF)
        self.assertEqual(vm.cpu.AC, 18)

    def test_run_returns_count(self):
        vm = VirtualMachine()
        vm.assemble_and_load(['LOAD X', 'HALT', 'X, DEC 9'])
        self.assertEqual(vm.run(), 2)
        self.assertTrue(vm.halted)

    def test_run_counts_only_its_own_steps(self):
        vm = VirtualMachine()
        vm.assemble_and_load(['LOAD X', 'ADD X', 'HALT', 'X, DEC 9'])
        vm.step()
        self.assertEqual(vm.run(), 2)
        self.assertEqual(vm.steps, 3)

    def test_step_after_halt(self):
        vm = run('HALT')
        with self.assertRaises(MachineError):
            vm.step()

    def test_input_and_output(self):
        seen = []
        vm = VirtualMachine(input_source=scripted_input([5]), output_sink=seen.append)
        vm.assemble_and_load(['INPUT', 'OUTPUT', 'HALT'])
        vm.run()
        self.assertEqual(seen, [5])
        self.assertEqual(vm.outputs, [5])
        self.assertEqual((vm.cpu.INPUT, vm.cpu.OUTPUT), (5, 5))

    def test_input_exhausted(self):
        vm = VirtualMachine(input_source=scripted_input([]))
        vm.assemble_and_load(['INPUT', 'HALT'])
        with self.assertRaises(MachineError):
            vm.run()
        self.assertTrue(vm.halted)

    def test_failing_input_source_halts(self):
        def broken():
            raise ValueError("not a number")
        vm = VirtualMachine(input_source=broken)
        vm.assemble_and_load(['INPUT', 'OUTPUT', 'HALT'])
        with self.assertRaises(MachineError) as cm:
            vm.run()
        self.assertTrue(vm.halted)
        self.assertIs(vm.error, cm.exception)
        self.assertEqual(cm.exception.pc, 0)
        self.assertIn("Input failed", str(cm.exception))
        # no silent resume past the INPUT
        with self.assertRaises(MachineError):
            vm.run()
        self.assertEqual(vm.outputs, [])

    def test_non_integer_input(self):
        vm = VirtualMachine(input_source=lambda: "abc")
        vm.assemble_and_load(['INPUT', 'HALT'])
        with self.assertRaises(MachineError):
            vm.run()
        self.assertTrue(vm.halted)

    def test_trace(self):
        messages = []
        vm = VirtualMachine(trace=messages.append)
        vm.assemble_and_load(['HALT'])
        vm.run()
        self.assertIn('!HALT!', messages)
        self.assertTrue(any(m.startswith('Loading Program: 1') for m in messages))


# ─────────────────────────────────────────────────────────────────────────────
class TestFaults(unittest.TestCase):

    def test_unknown_opcode(self):
        vm = VirtualMachine()
        vm.assemble_and_load(['LOAD X', 'X, DEC 0'])
        with self.assertRaises(UnknownOpcodeError) as cm:
            vm.run()
        self.assertEqual((cm.exception.opcode, cm.exception.pc), (0x0000, 1))
        self.assertTrue(vm.halted)
        self.assertIs(vm.error, cm.exception)
        # state stays inspectable
        self.assertEqual(vm.cpu.PC, 2)
        self.assertEqual(vm.cpu.IR, 0)

    def test_revision_one_has_no_call(self):
        vm = VirtualMachine(revision=1)
        vm.memory[0] = 0xA005
        vm.load()
        with self.assertRaises(UnknownOpcodeError) as cm:
            vm.step()
        self.assertEqual(cm.exception.opcode, 0xA000)

    def test_runaway_pc(self):
        vm = VirtualMachine(memory_size=4)
        # X holds 0x1000, itself a LOAD, so execution runs off the end
        vm.assemble_and_load(['LOAD X', 'LOAD X', 'LOAD X', 'X, DEC 4096'])
        with self.assertRaises(AddressOutOfRangeError) as cm:
            vm.run()
        self.assertEqual(cm.exception.pc, 4)

    def test_stack_underflow(self):
        vm = VirtualMachine()
        vm.assemble_and_load(['RET'])
        with self.assertRaises(AddressOutOfRangeError):
            vm.run()
        self.assertEqual(vm.cpu.SP, vm.stack_base)

    def test_stack_overflow(self):
        vm = VirtualMachine(memory_size=16, stack_base=14)
        vm.assemble_and_load(['LOOP, PUSH', 'JMP LOOP'])
        with self.assertRaises(AddressOutOfRangeError):
            vm.run()
        self.assertEqual(vm.cpu.SP, 16)


# ─────────────────────────────────────────────────────────────────────────────
class TestConfiguration(unittest.TestCase):

    def test_defaults(self):
        vm = VirtualMachine()
        self.assertEqual((vm.memory_size, vm.stack_base, vm.start_address), (4096, 2000, 0))
        self.assertEqual(vm.cpu.SP, 2000)

    def test_bad_values(self):
        for kw in ({'memory_size': 0}, {'memory_size': 8192},
                   {'start_address': 4096}, {'stack_base': -1},
                   {'revision': 2}):
            with self.subTest(**kw):
                with self.assertRaises(ValueError):
                    VirtualMachine(**kw)

    def test_start_address(self):
        vm = run('''
            LOAD X
            ADD X
            STORE X
            HALT
            X, DEC 21
        ''', start_address=0x300)
        self.assertEqual(vm.program.symtab['X'], 0x304)
        self.assertEqual(to_signed(vm.memory[0x304]), 42)
        self.assertEqual(vm.memory[0], 0)

    def test_program_too_big_for_memory(self):
        vm = VirtualMachine(memory_size=8, stack_base=6, start_address=6)
        with self.assertRaises(AddressOutOfRangeError):
            vm.assemble(['HALT', 'HALT', 'HALT'])

    def test_load_rejects_program_for_other_origin(self):
        other = VirtualMachine(start_address=0x100)
        program = other.assemble(['JMP L', 'L, HALT'])
        vm = VirtualMachine()
        with self.assertRaises(ValueError):
            vm.load(program)
        self.assertIsNone(vm.program)
        self.assertEqual(vm.memory[0], 0)

    def test_load_program_for_same_origin(self):
        program = VirtualMachine(start_address=0x100).assemble(['HALT'])
        vm = VirtualMachine(start_address=0x100)
        vm.load(program)
        self.assertEqual(vm.memory[0x100], 0x7000)
        self.assertEqual(vm.run(), 1)

    def test_initialize_is_idempotent(self):
        vm = run('''
            LOAD X
            OUTPUT
            HALT
            X, DEC 3
        ''')
        vm.initialize()
        first = (list(vm.memory.words), vm.cpu.snapshot(), vm.outputs, vm.code_length)
        vm.initialize()
        second = (list(vm.memory.words), vm.cpu.snapshot(), vm.outputs, vm.code_length)
        self.assertEqual(first, second)
        self.assertFalse(any(vm.memory.words))
        self.assertEqual(vm.cpu.SP, vm.stack_base)
        self.assertIsNone(vm.program)

    def test_memory_dump(self):
        vm = VirtualMachine()
        vm.assemble_and_load(['LOAD X', 'HALT', 'X, DEC -2'])
        frame = vm.memory.dump(0, 4, nonzero=True)
        self.assertEqual(list(frame['address']), [0, 1, 2])
        self.assertEqual(list(frame['hex']), ['1002', '7000', 'FFFE'])
        self.assertEqual(list(frame['value'])[2], -2)


if __name__ == '__main__':
    unittest.main()
