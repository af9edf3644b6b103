"""
Parsing of the DVI section of .fam files.

The DVI section is a nested, bracket-delimited structure:

    [DVI]
    [[Unidentified persons]]
    nPersons= 1
    [[[Victim 1]]]
    Name= V1
    Gender= Male
    [[[[DNA data]]]]
    SystemName= D3S1358
    Allele1= 15
    Allele2= 16
    [[Reference Families]]
    nFamilies= 1
    [[[Family 1]]]
    ...

The number of leading brackets gives the nesting depth of a header; all other
lines are `tag= value` pairs belonging to the most recent header.
"""
import pandas as pd

from .exceptions import AmbiguityError, FamError, FormatError
from .familias_pedigree import FEMALE, MALE, UNKNOWN, as_familias_pedigree
from .utils import get_id_mappings, read_int

REFERENCE_PEDIGREE = "Reference pedigree"
UNIDENTIFIED = "Unidentified persons"


class DviNode:
    """
    A header in the DVI section: the ordered data pairs below it, interleaved
    with its child headers.
    """
    def __init__(self, name, line=None):
        self.name = name
        self.line = line
        self.items = []
        self.children = {}

    def add_pair(self, tag, value):
        self.items.append((tag, value))

    def add_child(self, name, line=None):
        node = DviNode(name, line)
        if name in self.children:
            # a repeated header replaces the earlier one, keeping its position
            old = self.children[name]
            pos = next(k for k, it in enumerate(self.items) if it is old)
            self.items[pos] = node
        else:
            self.items.append(node)
        self.children[name] = node
        return node

    @property
    def pairs(self):
        return [it for it in self.items if isinstance(it, tuple)]

    def first_value(self):
        first = self.items[0] if self.items else None
        return first[1] if isinstance(first, tuple) else None

    def get(self, *path):
        """Follow a path of child names; None if any step is missing."""
        node = self
        for name in path:
            node = node.children.get(name) if node is not None else None
        return node

    def __eq__(self, other):
        if not isinstance(other, DviNode):
            return NotImplemented
        return self.name == other.name and self.items == other.items

    def __repr__(self):
        return (f"DviNode({self.name!r}, pairs={len(self.pairs)}, "
                f"children={list(self.children)})")


def split_pair(line):
    tag, sep, value = line.partition("= ")
    return tag.strip(), (value if sep else None)


def parse_dvi_tree(lines, first_line=1):
    """
    Parse the lines of a DVI section into a tree of DviNode objects.

    Parameters:
    lines : list[str]
        Lines starting with the '[DVI]' line
    first_line : int, default 1
        Line number of '[DVI]' in the file, used in error messages

    Returns:
    DviNode
        An unnamed root node; the section itself is `root.children['DVI']`
    """
    if not lines or lines[0] != "[DVI]":
        raise FormatError(first_line, "'[DVI]'", lines[0] if lines else "")

    root = DviNode(None)
    path = []
    for k, line in enumerate(lines):
        lineno = first_line + k
        if line.strip() == "":
            continue
        depth = len(line) - len(line.lstrip("["))
        if depth == 0:
            path[-1].add_pair(*split_pair(line))
            continue
        if depth > len(path) + 1:
            raise FormatError(lineno, f"a header of depth at most {len(path) + 1}", line)
        parent = path[depth - 2] if depth > 1 else root
        name = line.replace("[", "").replace("]", "")
        path = path[:depth - 1] + [parent.add_child(name, lineno)]
    return root


def get_value(item, iftag, default):
    if isinstance(item, tuple) and item[0] == iftag:
        return item[1]
    return default


def dna_data_to_dict(node):
    """
    Convert the 'DNA data' node of a person to a dict with keys
    '<locus>.1' and '<locus>.2'. Returns None if there is no data.
    """
    if node is None:
        return None
    vals = [v for _, v in node.pairs]
    tags = [t for t, _ in node.pairs]
    idx = [k for k, t in enumerate(tags) if t == "SystemName"]
    if not idx:
        return None
    res = {}
    for k in idx:
        loc = vals[k]
        res[f"{loc}.1"] = vals[k + 1] if k + 1 < len(vals) else None
        res[f"{loc}.2"] = vals[k + 2] if k + 2 < len(vals) else None
    return res


def parse_sex(value):
    return {"Male": MALE, "Female": FEMALE}.get(value, UNKNOWN)


def parse_persons(person_nodes):
    """Extract ids and sex codes from a list of person nodes."""
    ids, sex = [], []
    for p in person_nodes:
        first = p.items[0] if p.items else None
        second = p.items[1] if len(p.items) > 1 else None
        ids.append(get_value(first, "Name", p.name))
        sex.append(parse_sex(get_value(second, "Gender", None)))
    return ids, sex


def build_datamatrix(person_nodes, ids):
    """
    Stack the DNA data of persons into a genotype table.

    Persons without DNA data are left out. Columns are the union of all
    persons' columns, in order of first appearance; gaps are NaN.
    """
    rows, index = [], []
    for p, iid in zip(person_nodes, ids):
        vec = dna_data_to_dict(p.children.get("DNA data"))
        if vec is None:
            continue
        rows.append(vec)
        index.append(iid)
    if not rows:
        return None

    columns = []
    for vec in rows:
        columns.extend(c for c in vec if c not in columns)
    return pd.DataFrame(rows, index=pd.Index(index, name="id"), columns=columns)


def resolve_parent_sex(pairs, sex_by_id):
    """
    Decide the sex of parents with unknown sex, from their co-parents.

    A parent whose co-parents (other parents of its children) are all male
    becomes female, and vice versa. `sex_by_id` is updated in place.
    Raises AmbiguityError if the co-parents have mixed or unknown sex.
    """
    undecided = []
    for par, _ in pairs:
        if sex_by_id[par] == UNKNOWN and par not in undecided:
            undecided.append(par)

    for p in undecided:
        kids = {c for par, c in pairs if par == p}
        spouses = {par for par, c in pairs if c in kids and par != p}
        spouse_sex = {sex_by_id[s] for s in spouses}
        if spouse_sex <= {MALE}:
            sex_by_id[p] = FEMALE
        elif spouse_sex == {FEMALE}:
            sex_by_id[p] = MALE
        else:
            raise AmbiguityError(f"Cannot decide sex of this parent: {p}")
    return sex_by_id


def build_dvi_pedigree(ids, sex, ped_node):
    """
    Convert a DVI pedigree node (Parent/Child pairs) to a FamiliasPedigree.

    Individuals mentioned in the pedigree but not among the persons are added
    with unknown sex.
    """
    tags = [t for t, _ in ped_node.pairs]
    vals = [v for _, v in ped_node.pairs]
    pairs = [(vals[k], vals[k + 1]) for k, t in enumerate(tags)
             if t == "Parent" and k + 1 < len(vals)]

    this_id = list(ids)
    this_sex = list(sex)
    for iid in [par for par, _ in pairs] + [c for _, c in pairs]:
        if iid not in this_id:
            this_id.append(iid)
            this_sex.append(UNKNOWN)

    sex_by_id = dict(zip(this_id, this_sex))
    resolve_parent_sex(pairs, sex_by_id)
    this_sex = [sex_by_id[i] for i in this_id]

    index = get_id_mappings(this_id)
    fidx = [0] * len(this_id)
    midx = [0] * len(this_id)
    for par, child in pairs:
        if sex_by_id[par] == MALE:
            fidx[index[child] - 1] = index[par]
        else:
            midx[index[child] - 1] = index[par]

    return as_familias_pedigree(this_id, fidx, midx, this_sex)


class DviFamily:
    """
    A reference family (or the unidentified persons) from the DVI section.

    `pedigrees` is a single FamiliasPedigree, or a dict of named alternatives.
    `datamatrix` is a genotype table (DataFrame) or None.
    """
    def __init__(self, name, pedigrees, datamatrix, pedigree_names=None):
        self.name = name
        self.pedigrees = pedigrees
        self.datamatrix = datamatrix
        self.pedigree_names = list(pedigree_names or [])

    def __repr__(self):
        peds = list(self.pedigrees) if isinstance(self.pedigrees, dict) else 1
        ntyped = 0 if self.datamatrix is None else len(self.datamatrix)
        return f"DviFamily({self.name!r}, pedigrees={peds}, typed={ntyped})"


def parse_unidentified(node, verbose=True):
    if node is None or not node.items:
        return None

    n_pers = node.first_value()
    if verbose:
        print("Unidentified persons:", n_pers)
    if n_pers == "0":
        return None

    persons = list(node.children.values())
    ids, sex = parse_persons(persons)
    if verbose:
        for iid in ids:
            print(" ", iid)

    ped = as_familias_pedigree(ids, 0, 0, sex)
    return DviFamily(UNIDENTIFIED, ped, build_datamatrix(persons, ids))


def parse_family(node, deduplicate=True, verbose=True):
    """
    Convert a reference family node into a DviFamily.

    If `deduplicate` is True, and the family has exactly two pedigrees which
    are identical apart from their names, the one called 'Reference pedigree'
    is removed and the remaining pedigree is returned without the outer dict.
    """
    famname = node.first_value()
    persons_node = node.children.get("Persons")
    peds_node = node.children.get("Pedigrees")
    if persons_node is None or peds_node is None:
        raise FamError(f"DVI family '{famname}' must have both 'Persons' and 'Pedigrees'")

    persons = list(persons_node.children.values())
    ped_nodes = list(peds_node.children.values())
    if verbose:
        print("  %s (%s persons, %s pedigrees)" % (famname, persons_node.first_value(),
                                                  peds_node.first_value()))

    ids, sex = parse_persons(persons)
    ped_names = [get_value(pn.items[0] if pn.items else None, "Name", pn.name) for pn in ped_nodes]

    dedup = (deduplicate and len(ped_nodes) == 2
             and ped_nodes[0].items[1:] == ped_nodes[1].items[1:]
             and ped_names.count(REFERENCE_PEDIGREE) == 1)

    pedigrees = {}
    for pn, pednm in zip(ped_nodes, ped_names):
        skipthis = dedup and pednm == REFERENCE_PEDIGREE
        if verbose:
            print("    %s%s" % (pednm, " [REMOVED]" if skipthis else ""))
        if skipthis:
            continue
        pedigrees[pednm] = build_dvi_pedigree(ids, sex, pn)

    kept = list(pedigrees)
    if dedup:
        pedigrees = next(iter(pedigrees.values()))

    return DviFamily(famname, pedigrees, build_datamatrix(persons, ids), pedigree_names=kept)


def read_dvi(lines, deduplicate=True, verbose=True, first_line=1):
    """
    Parse a DVI section into DviFamily records.

    Parameters:
    lines : list[str]
        Lines starting with '[DVI]'
    deduplicate : bool, default True
        Remove redundant 'Reference pedigree' copies
    verbose : bool, default True
        Print a summary while parsing
    first_line : int, default 1
        Line number of '[DVI]' in the file

    Returns:
    dict
        Family name -> DviFamily, preceded by 'Unidentified persons' if present
    """
    tree = parse_dvi_tree(lines, first_line=first_line)
    dvi = tree.children["DVI"]

    res = {}
    un = parse_unidentified(dvi.get(UNIDENTIFIED), verbose=verbose)
    if un is not None:
        res[UNIDENTIFIED] = un

    refs_node = dvi.get("Reference Families")
    if refs_node is None:
        return res

    families = list(refs_node.children.values())
    n_fam = read_int(refs_node.first_value(), refs_node.line + 1, "the number of reference families")
    if n_fam != len(families):
        raise FormatError(refs_node.line + 1, f"the number of reference families ({len(families)})",
                          refs_node.first_value())
    if verbose:
        print("\nReference families:", n_fam)

    for fam_node in families:
        fam = parse_family(fam_node, deduplicate=deduplicate, verbose=verbose)
        res[fam.name] = fam
    return res
