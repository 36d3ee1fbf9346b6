"""
Model class for the Assembler application.
Handles data management and drives the assembler and the simulated machine.
"""

from pathlib import Path

from assembler import listing, write_outputs
from errors import AssemblyError, MachineError
from machine import VirtualMachine


class AssemblerModel:
    def __init__(self, output_dir=None, **machine_options):
        self.target_file = ""
        self.status = "Ready"
        self.is_running = False
        self.output_dir = output_dir
        self.source_lines = []
        self.listing = []
        self.log = []
        self.vm = VirtualMachine(trace=self.log.append, **machine_options)

    def set_file(self, file_path):
        """Set the target file path"""
        self.target_file = str(file_path)
        self.status = f"Loaded: {file_path}"

    def get_file(self):
        """Get the current target file path"""
        return self.target_file

    def get_status(self):
        """Get the current status"""
        return self.status

    def set_status(self, status):
        """Set the current status"""
        self.status = status

    def set_input_source(self, input_source):
        """Replace the source the INPUT instruction reads from"""
        self.vm.input_source = input_source

    def is_file_loaded(self):
        """Check if a file is loaded"""
        return bool(self.target_file.strip())

    def assemble(self):
        """
        Assemble the target file and load it into the machine.
        Returns True if successful, False otherwise.
        """
        if not self.is_file_loaded():
            self.status = "No file selected to run"
            return False

        self.is_running = True
        self.status = "Running assembly..."
        self.log.clear()
        self.listing = []

        try:
            self.source_lines = Path(self.target_file).read_text(encoding="utf-8").splitlines()
            self.vm.initialize()
            program = self.vm.assemble_and_load(self.source_lines)
            self.listing = listing(program)
            if self.output_dir:
                write_outputs(program, self.target_file, self.output_dir)
            self.status = f"Assembly completed for: {self.target_file} ({program.code_length} words)"
            return True
        except (AssemblyError, OSError, UnicodeDecodeError) as e:
            self.vm.initialize()
            self.status = f"Assembly failed: {e}"
            return False
        finally:
            self.is_running = False

    def run(self):
        """
        Execute the assembled program until it halts.
        Returns True on a clean HALT, False otherwise.
        """
        if self.vm.program is None:
            self.status = "Nothing assembled to run"
            return False

        # a finished run leaves memory modified, start again from the source
        if self.vm.halted:
            self.vm.initialize()
            self.vm.assemble_and_load(self.source_lines)

        self.is_running = True
        self.status = "Running program..."
        try:
            executed = self.vm.run()
            outputs = ", ".join(str(value) for value in self.vm.outputs) or "none"
            self.status = f"Halted after {executed} instructions; output: {outputs}"
            return True
        except MachineError as e:
            self.status = f"Execution stopped: {e}"
            return False
        finally:
            self.is_running = False

    def get_listing(self):
        return self.listing

    def get_outputs(self):
        return list(self.vm.outputs)

    def get_log(self):
        return list(self.log)

    def get_registers(self):
        return self.vm.cpu.snapshot()

    def memory_dump(self, start=0, stop=None, nonzero=True):
        """DataFrame of memory words, by default only the non-zero ones"""
        return self.vm.memory.dump(start, stop, nonzero)

    def clear_file(self):
        """Clear the currently loaded file"""
        self.target_file = ""
        self.source_lines = []
        self.listing = []
        self.vm.initialize()
        self.status = "No file selected"
