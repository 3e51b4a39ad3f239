'''split crontab files into environment assignments and job lines'''
import re
from typing import NamedTuple, Union

ENVVAR_RE = re.compile(r'^([A-Za-z_0-9]+)\s*=\s*(.*)$')


class Assignment(NamedTuple):
    lineno:int
    key:str
    value:str


class Line(NamedTuple):
    lineno:int
    text:str

    @property
    def fields(self) -> list[str]:
        return self.text.split()


Token = Union[Assignment, Line]


def decode(rawline:bytes) -> str:
    try:
        return rawline.decode('utf8')
    except UnicodeDecodeError:
        # let's hope it's in a trailing comment
        try:
            return rawline.split(b'#')[0].decode('utf8')
        except UnicodeDecodeError:
            return rawline.decode('ascii', 'replace')


def unquote(value:str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in '\'"':
        return value[1:-1]
    return value


def tokenize(data:bytes) -> list[Token]:
    tokens:list[Token] = []
    for lineno, rawline in enumerate(data.splitlines(), start=1):
        rawline = rawline.strip()
        if not rawline or rawline.startswith(b'#'):
            continue

        line = decode(rawline).strip()
        while '  ' in line or '\t' in line:
            line = line.replace('\t', ' ').replace('  ', ' ')

        envvar = ENVVAR_RE.match(line)
        if envvar:
            tokens.append(Assignment(lineno, envvar.group(1), unquote(envvar.group(2))))
        else:
            tokens.append(Line(lineno, line))
    return tokens


def read_crontab(filename:str) -> list[Token]:
    '''raises OSError when the file can not be read'''
    with open(filename, 'rb') as f:
        return tokenize(f.read())
