"""
Main entry point for the Assembler application.
Starts the MVC application, or assembles and runs a file with --no-gui.
"""

import argparse
import sys

from assembler import DEFAULT_REVISION, SUPPORTED_REVISIONS
from cpu import MEMORY_SIZE, STACK_BASE, START_ADDRESS
from machine import scripted_input
from model import AssemblerModel


def build_parser():
    parser = argparse.ArgumentParser(
        description='MARIE-style assembler and simulator')
    parser.add_argument('input', nargs='?', help='Assembly source file')
    parser.add_argument('--no-gui', action='store_true',
                        help='Assemble and run the input file without the GUI')
    parser.add_argument('--memory-size', type=int, default=MEMORY_SIZE,
                        help=f'Memory size in words (default: {MEMORY_SIZE})')
    parser.add_argument('--stack-base', type=int, default=STACK_BASE,
                        help=f'First word of the stack region (default: {STACK_BASE})')
    parser.add_argument('--start', type=int, default=START_ADDRESS,
                        help=f'Load address of the program (default: {START_ADDRESS})')
    parser.add_argument('--revision', type=int, default=DEFAULT_REVISION,
                        choices=SUPPORTED_REVISIONS, help='Instruction set revision')
    parser.add_argument('--input', dest='input_words', metavar='N[,N...]',
                        help='Comma-separated values for INPUT instead of prompting')
    parser.add_argument('-o', '--output-dir',
                        help='Directory for the .obj and .lst files')
    parser.add_argument('-l', '--listing', action='store_true',
                        help='Print the assembly listing')
    parser.add_argument('--trace', action='store_true',
                        help='Print the execution trace')
    return parser


def run_headless(args):
    model = AssemblerModel(
        output_dir=args.output_dir,
        memory_size=args.memory_size,
        stack_base=args.stack_base,
        start_address=args.start,
        revision=args.revision,
    )
    if args.input_words:
        model.set_input_source(scripted_input(
            int(word) for word in args.input_words.split(',') if word.strip()))

    model.set_file(args.input)
    ok = model.assemble()
    print(model.get_status())
    if not ok:
        return 1
    if args.listing:
        print("\n".join(model.get_listing()))

    ok = model.run()
    if args.trace:
        print("\n".join(model.get_log()))
    for value in model.get_outputs():
        print(f"OUTPUT: {value}")
    print(model.get_status())
    return 0 if ok else 1


def main(argv=None):
    """Main function to start the application"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.no_gui:
        if not args.input:
            parser.error('--no-gui needs an input file')
        try:
            return run_headless(args)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2

    from controller import AssemblerController
    try:
        # Create the controller (which creates model and view)
        model = AssemblerModel(
            output_dir=args.output_dir,
            memory_size=args.memory_size,
            stack_base=args.stack_base,
            start_address=args.start,
            revision=args.revision,
        )
        if args.input:
            model.set_file(args.input)
        app_controller = AssemblerController(model)

        # Start the application
        app_controller.run()

    except Exception as e:
        print(f"Error starting application: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
