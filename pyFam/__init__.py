"""
pyFam Package - Reader for Familias .fam files

This package parses pedigrees, genotypes, marker databases and DVI data from
files written by the Familias software.
"""

# Import key functions for easy access
from .fam_reader import read_fam, parse_fam_lines, FamResult
from .familias_pedigree import FamiliasPedigree, as_familias_pedigree
from .database import FamiliasLocus
from .dvi import read_dvi, parse_dvi_tree, DviNode, DviFamily
from .familias2ped import Ped, familias2ped, read_familias_loci, unwrap_single
from .mutation_models import MutationMatrix, mutation_matrix, stabilize
from .exceptions import (
    FamError,
    FormatError,
    UnsupportedFeatureError,
    AmbiguityError,
    ResourceError,
    DataIntegrityWarning
)
__all__ = [
    'read_fam',
    'parse_fam_lines',
    'FamResult',
    'FamiliasPedigree',
    'as_familias_pedigree',
    'FamiliasLocus',
    'read_dvi',
    'parse_dvi_tree',
    'DviNode',
    'DviFamily',
    'Ped',
    'familias2ped',
    'read_familias_loci',
    'unwrap_single',
    'MutationMatrix',
    'mutation_matrix',
    'stabilize',
    'FamError',
    'FormatError',
    'UnsupportedFeatureError',
    'AmbiguityError',
    'ResourceError',
    'DataIntegrityWarning'
]
