import re
import sys
from collections import namedtuple
from enum import Enum
from pathlib import Path

import pandas as pd

from cpu import MEMORY_SIZE, OPERAND_BITS, OPERAND_MASK, to_word
from errors import (
    AddressOutOfRangeError, DuplicateLabelError, MalformedLineError,
    UndefinedSymbolError, UnknownMnemonicError,
)

DEFAULT_REVISION = 3
# revision 2 bound JNS/CLEAR/JUMPI to 0xA/0xC and is not supported
SUPPORTED_REVISIONS = (1, 3)
OPERAND_KINDS = {'address', 'condition', 'none', 'data'}

LABEL_DELIMITER = ','
COMMENT = '/'
TERMINATOR = 'END'
CONSTANT = 'DEC'
WORD_MIN, WORD_MAX = -0x8000, 0xFFFF
DATA_DIR = Path(sys.prefix) / "share" / "marie-assembler"


def check_revision(revision):
    if revision not in SUPPORTED_REVISIONS:
        raise ValueError(
            f"Unsupported ISA revision {revision}; expected one of {SUPPORTED_REVISIONS}")
    return revision


#load the opcode table
def load_optab(filename="optab.csv", revision=DEFAULT_REVISION):
    check_revision(revision)
    file_path = Path(filename)
    # resolve relative paths against the script directory, then the
    # shared data directory a regular install puts the table in
    if not file_path.is_absolute():
        candidates = [Path(__file__).parent / file_path, DATA_DIR / file_path]
        file_path = next((path for path in candidates if path.exists()), candidates[0])

    # if not found, fail immediately
    if not file_path.exists():
        raise FileNotFoundError(f"optab file not found: {file_path}")

    df = pd.read_csv(file_path, dtype=str, keep_default_na=False)
    # strip whitespace from column names
    df.columns = df.columns.str.strip()

    optab = {}
    for idx, row in df.iterrows():
        name = row.get('name', '').strip().upper()
        kind = row.get('operand', '').strip().lower()
        opcode_str = row.get('opcode', '').strip()
        if kind not in OPERAND_KINDS:
            raise ValueError(f"Invalid operand kind '{kind}' for instruction '{name}' (row {idx}) in optab: {file_path}")
        try:
            row_revision = int(row.get('revision', '1').strip() or 1)
        except ValueError:
            raise ValueError(f"Invalid revision for instruction '{name}' (row {idx}) in optab: {file_path}")
        if row_revision > revision:
            continue
        # directives reserve a word but have no opcode
        if kind == 'data':
            optab[name] = {'opcode': None, 'operand': kind, 'revision': row_revision}
            continue
        if not opcode_str:
            raise ValueError(f"Missing opcode for instruction '{name}' (row {idx}) in optab: {file_path}")
        try:
            opcode = int(opcode_str, 16)
        except ValueError:
            raise ValueError(f"Invalid hex opcode '{opcode_str}' for instruction '{name}' (row {idx}) in optab: {file_path}")
        optab[name] = {'opcode': opcode, 'operand': kind, 'revision': row_revision}
    return optab

OPTAB = load_optab()


# --- Line classification, shared by both passes ---
class LineShape(Enum):
    BLANK = 'blank'
    TERMINATOR = 'terminator'
    CONSTANT = 'constant'
    LABELED = 'labeled'
    BARE = 'bare'


SourceLine = namedtuple('SourceLine', 'lineno shape label mnemonic operand value text')

Program = namedtuple('Program', 'machine_code code_length symtab object_codes origin')


def tokenize(line):
    """Split a source line into whitespace-delimited fields, dropping / comments."""
    if COMMENT in line:
        line = line.split(COMMENT, 1)[0]
    return [field for field in re.split(r"\s+", line.strip()) if field]


def parse_constant(operand, lineno):
    if operand is None:
        raise MalformedLineError(lineno, f"{CONSTANT} requires a value")
    try:
        value = int(operand, 10)
    except ValueError:
        raise MalformedLineError(lineno, f"Invalid {CONSTANT} value: {operand}")
    if not WORD_MIN <= value <= WORD_MAX:
        raise MalformedLineError(lineno, f"{CONSTANT} value does not fit in a word: {value}")
    return value


def classify_line(text, lineno):
    """Classify one source line as blank, END, constant, labeled or bare."""
    tokens = tokenize(text)
    if not tokens:
        return SourceLine(lineno, LineShape.BLANK, None, None, None, None, text)
    if tokens[0] == TERMINATOR:
        return SourceLine(lineno, LineShape.TERMINATOR, None, TERMINATOR, None, None, text)

    label = None
    if LABEL_DELIMITER in tokens[0]:
        # LABEL, OPCODE operand  or  LABEL,OPCODE operand
        label, _, rest = tokens[0].partition(LABEL_DELIMITER)
        if not label:
            raise MalformedLineError(lineno, "Missing label name before ','")
        tokens = ([rest] if rest else []) + tokens[1:]
        if not tokens:
            raise MalformedLineError(lineno, f"Label {label} has no instruction")

    mnemonic, operands = tokens[0], tokens[1:]
    if len(operands) > 1:
        raise MalformedLineError(lineno, f"Too many operands for {mnemonic}: {' '.join(operands)}")
    operand = operands[0] if operands else None

    if mnemonic == CONSTANT:
        value = parse_constant(operand, lineno)
        return SourceLine(lineno, LineShape.CONSTANT, label, mnemonic, operand, value, text)
    shape = LineShape.LABELED if label else LineShape.BARE
    return SourceLine(lineno, shape, label, mnemonic, operand, None, text)


def classify_lines(lines):
    """Classify raw lines up to and including END; blank lines are dropped."""
    source_lines = []
    for lineno, text in enumerate(lines, start=1):
        line = classify_line(text, lineno)
        if line.shape is LineShape.BLANK:
            continue
        source_lines.append(line)
        if line.shape is LineShape.TERMINATOR:
            break
    return source_lines


def addressed_lines(source_lines):
    """Yield every line that occupies a word, stopping at END."""
    for line in source_lines:
        if line.shape is LineShape.TERMINATOR:
            break
        if line.shape is LineShape.BLANK:
            continue
        yield line


#turns int into 0 padded hex
def hexstr(value, width=4):
    return f"{value:0{width}X}"


#PASS 1 - building the SYMTAB
def pass1(source_lines, origin=0, memory_size=MEMORY_SIZE):
    symtab = {} #label -> absolute address
    machine_code = [] #one word per addressed line, constants placed now
    intermediate = [] #storing list of address, line tuples

    for line in addressed_lines(source_lines):
        address = origin + len(intermediate)
        if address >= memory_size:
            raise AddressOutOfRangeError(address, memory_size, line.lineno)

        if line.label:
            if line.label in symtab:
                raise DuplicateLabelError(line.label, line.lineno)
            symtab[line.label] = address

        if line.shape is LineShape.CONSTANT:
            machine_code.append(to_word(line.value))
        else:
            machine_code.append(0)
        intermediate.append((address, line))

    return symtab, machine_code, intermediate


#Pass 2 Helper Functions
def resolve_operand(line, kind, symtab, memory_size):
    """Return the 12-bit operand field for an instruction line."""
    if kind == 'none':
        if line.operand is not None:
            raise MalformedLineError(line.lineno, f"{line.mnemonic} takes no operand")
        return 0
    if line.operand is None:
        raise MalformedLineError(line.lineno, f"{line.mnemonic} requires an operand")

    if kind == 'condition':
        # the skip condition is written in hex: 000, 400, 800
        try:
            condition = int(line.operand, 16)
        except ValueError:
            raise MalformedLineError(line.lineno, f"Invalid condition for {line.mnemonic}: {line.operand}")
        if not 0 <= condition <= OPERAND_MASK:
            raise MalformedLineError(line.lineno, f"Condition does not fit in 12 bits: {line.operand}")
        return condition

    if line.operand not in symtab:
        raise UndefinedSymbolError(line.operand, line.lineno)
    address = symtab[line.operand]
    if address >= memory_size or address > OPERAND_MASK:
        raise AddressOutOfRangeError(address, min(memory_size, OPERAND_MASK + 1), line.lineno)
    return address


#PASS 2 - generating machine code
def pass2(source_lines, symtab, machine_code, optab=None, origin=0, memory_size=MEMORY_SIZE):
    optab = OPTAB if optab is None else optab
    object_codes = []  # (address, word, line)

    for index, line in enumerate(addressed_lines(source_lines)):
        address = origin + index
        entry = optab.get(line.mnemonic)
        if entry is None:
            raise UnknownMnemonicError(line.mnemonic, line.lineno)

        if entry['operand'] == 'data':
            # constants were placed in pass 1, markers stay empty
            if line.shape is not LineShape.CONSTANT and line.operand is not None:
                raise MalformedLineError(line.lineno, f"{line.mnemonic} takes no operand")
            word = machine_code[index]
        else:
            operand = resolve_operand(line, entry['operand'], symtab, memory_size)
            word = (entry['opcode'] << OPERAND_BITS) | operand
            machine_code[index] = word
        object_codes.append((address, word, line))

    return object_codes


def assemble_lines(lines, optab=None, origin=0, memory_size=MEMORY_SIZE):
    """Run both passes over raw source lines and return a Program."""
    source_lines = classify_lines(lines)
    symtab, machine_code, _ = pass1(source_lines, origin, memory_size)
    object_codes = pass2(source_lines, symtab, machine_code, optab, origin, memory_size)
    return Program(machine_code, len(machine_code), symtab, object_codes, origin)


def object_program(program, program_name="NONAME", words_per_record=16):
    """Build H/T/E records for an assembled program."""
    records = [f"H{program_name[:6]:<6}{hexstr(program.origin)}{hexstr(program.code_length)}"]
    words = program.machine_code
    for offset in range(0, len(words), words_per_record):
        chunk = words[offset:offset + words_per_record]
        body = ''.join(hexstr(word) for word in chunk)
        records.append(f"T{hexstr(program.origin + offset)}{hexstr(len(chunk), 2)}{body}")
    records.append(f"E{hexstr(program.origin)}")
    return records


def listing(program):
    listing_lines = [
        "Line  Loc  Source Statement               Object Code",
        "------------------------------------------------------"
    ]
    for address, word, line in program.object_codes:
        source = line.text.split(COMMENT, 1)[0].strip()
        listing_lines.append(f"{line.lineno:<5} {hexstr(address, 3)}  {source:<30} {hexstr(word)}")
    return listing_lines


def write_outputs(program, input_file, output_dir=None):
    """Write <stem>.obj and <stem>.lst; return both paths."""
    source = Path(input_file)
    out_dir = Path(output_dir) if output_dir else source.parent
    out_dir.mkdir(parents=True, exist_ok=True)

    obj_path = out_dir / f"{source.stem}.obj"
    obj_path.write_text("\n".join(object_program(program, source.stem.upper())) + "\n")
    list_path = out_dir / f"{source.stem}.lst"
    list_path.write_text("\n".join(listing(program)) + "\n")
    return obj_path, list_path


def assemble_file(input_file, output_dir=None, revision=DEFAULT_REVISION, origin=0, memory_size=MEMORY_SIZE):
    lines = Path(input_file).read_text(encoding="utf-8").splitlines()
    program = assemble_lines(lines, load_optab(revision=revision), origin, memory_size)
    write_outputs(program, input_file, output_dir)
    return program


if __name__ == "__main__":
    assemble_file("txt_files/add_two.asm")
    print("Assembly complete!")
