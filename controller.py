"""
Controller class for the Assembler application.
Handles user interactions and coordinates between Model and View.
"""

from model import AssemblerModel
from view import AssemblerView


class AssemblerController:
    def __init__(self, model=None):
        self.model = model or AssemblerModel()
        self.view = AssemblerView()

        # Set up view callbacks
        self.view.set_load_callback(self.handle_load_file)
        self.view.set_assemble_callback(self.handle_assemble)
        self.view.set_run_callback(self.handle_run)
        self.model.set_input_source(self.view.ask_input)

        # Initialize view with model data
        if self.model.is_file_loaded():
            self.view.set_button_state("assemble", "normal")
        self.update_view()

    def handle_load_file(self):
        """Handle the load file button click"""
        file_path = self.view.show_file_dialog()

        if file_path:
            self.model.set_file(file_path)
            self.view.update_status(self.model.get_status())
            self.view.set_button_state("assemble", "normal")
            self.view.set_button_state("run", "disabled")
        else:
            if not self.model.is_file_loaded():
                self.model.set_status("No file selected")
                self.view.update_status(self.model.get_status())

    def handle_assemble(self):
        """Handle the assemble button click"""
        if not self.model.is_file_loaded():
            self.model.set_status("No file selected to run")
            self.view.update_status(self.model.get_status())
            return

        # Disable assemble button during processing
        self.view.set_button_state("assemble", "disabled")

        # Perform assembly
        success = self.model.assemble()

        # Update view with results
        self.view.update_status(self.model.get_status())
        self.view.show_output(self.model.get_listing())
        self.view.set_button_state("run", "normal" if success else "disabled")

        # Re-enable assemble button
        self.view.set_button_state("assemble", "normal")

        return success

    def handle_run(self):
        """Handle the run button click"""
        self.view.set_button_state("run", "disabled")
        success = self.model.run()
        self.view.update_status(self.model.get_status())
        outputs = [f"OUTPUT: {value}" for value in self.model.get_outputs()]
        self.view.show_output(self.model.get_log() + outputs)
        self.view.set_button_state("run", "normal")
        return success

    def update_view(self):
        """Update the view with current model state"""
        self.view.update_status(self.model.get_status())

    def run(self):
        """Start the application"""
        self.view.run()

    def get_model(self):
        """Get reference to the model (for testing or extension)"""
        return self.model

    def get_view(self):
        """Get reference to the view (for testing or extension)"""
        return self.view
