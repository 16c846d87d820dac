"""
Option vocabularies shared by the backend and the reflector routines.

Options are plain strings, validated once at the public boundary with
check_option() in pyhouseholder.core.validation.
"""

from typing import Literal

Side = Literal['left', 'right']
Operation = Literal['none', 'transpose']
Fill = Literal['upper', 'lower']
Diagonal = Literal['unit', 'non_unit']
Direction = Literal['forward', 'backward']
Storage = Literal['column_wise', 'row_wise']

SIDES: tuple[str, ...] = ('left', 'right')
OPERATIONS: tuple[str, ...] = ('none', 'transpose')
DIRECTIONS: tuple[str, ...] = ('forward', 'backward')
STORAGES: tuple[str, ...] = ('column_wise', 'row_wise')


def flip(trans: Operation) -> Operation:
    """The opposite transpose sense."""
    return 'none' if trans == 'transpose' else 'transpose'
