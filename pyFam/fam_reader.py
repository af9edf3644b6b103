import pandas as pd
from tqdm.auto import tqdm

from .database import parse_database
from .dvi import read_dvi
from .exceptions import Diagnostics, FormatError, UnsupportedFeatureError
from .familias2ped import familias2ped, read_familias_loci, set_chrom, unwrap_single
from .familias_pedigree import FEMALE, MALE, as_familias_pedigree
from .mutation_models import FALLBACK_CODES
from .utils import LineCursor, extract_labeled_number, load_fam_lines, strip_quotes


class FamResult:
    """
    Output of read_fam().

    main : list, dict or Ped
        Locus attributes (database only), pedigrees, or DVI families
    params : dict or None
        Extra parameters, only if requested with `include_params`
    diagnostics : list[str]
        Data integrity warnings issued while parsing
    """
    def __init__(self, main, params=None, diagnostics=None):
        self.main = main
        self.params = params
        self.diagnostics = list(diagnostics or [])

    def __repr__(self):
        return (f"FamResult(main={type(self.main).__name__}, "
                f"params={None if self.params is None else list(self.params)}, "
                f"diagnostics={len(self.diagnostics)})")


def parse_individuals(cursor, nid, params=None, verbose=True):
    """
    Read the individuals and their genotypes (as allele indices).

    Each individual occupies 6 + 3*nmi lines, where nmi is the number of
    typed markers: id, an info line, the dropout line, another info line,
    sex, nmi, followed by
    (allele 1, allele 2, marker) index triples. Indices in the file are
    0-based; they are returned 1-based.

    Returns:
    tuple
        (ids, sex codes, genotypes) where genotypes[i] is a list of
        (a1, a2, marker, line) tuples
    """
    ids, sex, genotypes = [], [], []
    for _ in range(nid):
        iid = cursor.peek(0)
        ids.append(iid)
        if params is not None:
            params.setdefault("dropoutConsider", {})[iid] = "(Consider dropouts)" in (cursor.peek(2) or "")
        sex.append(MALE if cursor.peek(4) == "#TRUE#" else FEMALE)

        nmi = cursor.read_int(5, f'number of genotypes for "{iid}"')
        if verbose:
            print(f"  Individual '{iid}': Genotypes for {nmi} markers read")

        g = []
        for k in range(nmi):
            off = 6 + 3 * k
            a1 = cursor.read_int(off, f'an allele index for "{iid}"') + 1
            a2 = cursor.read_int(off + 1, f'an allele index for "{iid}"') + 1
            m = cursor.read_int(off + 2, f'a marker index for "{iid}"') + 1
            g.append((a1, a2, m, cursor.pos + off))
        genotypes.append(g)

        cursor.advance(6 + 3 * nmi)
    return ids, sex, genotypes


def read_relations(cursor, offset, n_rel, ids, sex, fidx, midx, check_twins=False):
    """
    Read `n_rel` (parent, child) index pairs starting at `offset`, and
    record them in `fidx`/`midx` according to the sex of the parent.
    """
    for k in range(n_rel):
        off = offset + 2 * k
        try:
            par = cursor.read_int(off, "a parent index", max_value=len(ids) - 1) + 1
        except FormatError:
            # twin relations are written as text in place of the parent index
            if check_twins and "Direct" in (cursor.peek(off) or ""):
                raise UnsupportedFeatureError("File contains twins - this is not supported yet")
            raise
        child = cursor.read_int(off + 1, "a child index", max_value=len(ids) - 1) + 1
        if sex[par - 1] == MALE:
            fidx[child - 1] = par
        else:
            midx[child - 1] = par


def parse_known_relations(cursor, ids, sex):
    """
    Read the 'Known relations' block: extra individuals and the relations
    shared by all pedigrees.

    Returns:
    tuple
        (ids, sex, fidx, midx), extended with the extras
    """
    if cursor.peek(0) != "Known relations":
        raise FormatError(cursor.pos, '"Known relations"', cursor.peek(0))

    n_fem = cursor.read_int(1, "number of extra females")
    n_mal = cursor.read_int(2, "number of extra males")
    ids = ids + ["extra_%d" % j for j in range(1, n_fem + n_mal + 1)]
    sex = sex + [FEMALE] * n_fem + [MALE] * n_mal
    fidx = [0] * len(ids)
    midx = [0] * len(ids)

    n_rel = cursor.read_int(3, "number of relations")
    read_relations(cursor, 4, n_rel, ids, sex, fidx, midx)
    cursor.advance(4 + 2 * n_rel)
    return ids, sex, fidx, midx


def parse_pedigrees(cursor, ids, sex, fidx, midx, verbose=True):
    """
    Read the pedigrees section, starting at the number of pedigrees.

    Returns:
    FamiliasPedigree or dict or None
        With no pedigrees, the single pedigree given by the known relations;
        otherwise a dict of named pedigrees, in file order
    """
    n_ped = cursor.read_int(0, "number of pedigrees")
    if verbose:
        print("\nNumber of pedigrees:", n_ped)
    cursor.advance(1)

    if n_ped == 0:
        return as_familias_pedigree(ids, fidx, midx, sex)

    pedigrees = {}
    for _ in range(n_ped):
        ped_idx = cursor.read_int(0, "a pedigree index") + 1
        ped_name = cursor.peek(1)

        n_fem = cursor.read_int(2, f'number of extra females in pedigree "{ped_name}"')
        n_mal = cursor.read_int(3, f'number of extra males in pedigree "{ped_name}"')
        n_extra = n_fem + n_mal
        ids_i = ids + ["extra_ped%d_%d" % (ped_idx, j) for j in range(1, n_extra + 1)]
        sex_i = sex + [FEMALE] * n_fem + [MALE] * n_mal
        fidx_i = fidx + [0] * n_extra
        midx_i = midx + [0] * n_extra
        if verbose:
            print(f"  Pedigree '{ped_name}' ({n_fem} extra females, {n_mal} extra males)")

        n_rel = cursor.read_int(4, f'number of relations in pedigree "{ped_name}"')
        read_relations(cursor, 5, n_rel, ids_i, sex_i, fidx_i, midx_i, check_twins=True)

        pedigrees[ped_idx] = (ped_name, as_familias_pedigree(ids_i, fidx_i, midx_i, sex_i))
        cursor.advance(5 + 2 * n_rel)

    return {name: ped for _, (name, ped) in sorted(pedigrees.items())}


def build_genotype_table(ids, genotypes, loci):
    """
    Convert allele indices to allele labels.

    Returns:
    pd.DataFrame or None
        Index = ids, columns '<locus>.1', '<locus>.2'; untyped is None.
        None if nobody is typed.
    """
    if not any(genotypes):
        return None
    loc_names = [loc.locusname for loc in loci]
    cols = [f"{n}.{k}" for n in loc_names for k in (1, 2)]
    dm = pd.DataFrame(None, index=pd.Index(ids, name="id"), columns=cols, dtype=object)

    for row, g in enumerate(genotypes):
        for a1, a2, m, line in g:
            if not 1 <= m <= len(loci):
                raise FormatError(line + 2, f"a marker index below {len(loci)}", m - 1)
            labels = loci[m - 1].allele_labels
            for k, (a, lineno) in enumerate(((a1, line), (a2, line + 1)), start=1):
                if not 1 <= a <= len(labels):
                    raise FormatError(lineno, f"an allele index below {len(labels)} for {loc_names[m - 1]}",
                                      a - 1)
                dm.iat[row, 2 * (m - 1) + k - 1] = labels[a - 1]
    return dm


def read_fam(famfile, use_dvi=None, x_chrom=False, prefix_added="added_", fallback_model="equal",
             simplify1=True, deduplicate=True, include_params=False, verbose=True):
    """
    Read a Familias .fam file.

    Parameters:
    famfile : str | Path
        Path or URL to a .fam file
    use_dvi : bool or None, default None
        Parse the DVI section. If None, it is parsed if present; if True and
        there is no DVI section, an error is raised
    x_chrom : bool, default False
        Set the chromosome of all markers to "X"
    prefix_added : str, default "added_"
        Prefix for the ids of added parents
    fallback_model : str, default "equal"
        "equal" or "proportional"; used when a stepwise model cannot be applied
    simplify1 : bool, default True
        Remove the outer layer if the file contains a single pedigree
    deduplicate : bool, default True
        DVI only: remove redundant copies of reference pedigrees
    include_params : bool, default False
        Also return version, database name, dropout values, theta etc.
    verbose : bool, default True
        Print a summary while parsing

    Returns:
    FamResult
    """
    if fallback_model not in FALLBACK_CODES:
        raise ValueError(f"`fallback_model` must be 'equal' or 'proportional', not '{fallback_model}'")

    x = strip_quotes(load_fam_lines(famfile, verbose=verbose))
    return parse_fam_lines(x, use_dvi=use_dvi, x_chrom=x_chrom, prefix_added=prefix_added,
                           fallback_model=fallback_model, simplify1=simplify1,
                           deduplicate=deduplicate, include_params=include_params,
                           verbose=verbose)


def parse_fam_lines(x, use_dvi=None, x_chrom=False, prefix_added="added_", fallback_model="equal",
                    simplify1=True, deduplicate=True, include_params=False, verbose=True):
    """
    Parse the (quote-stripped) lines of a .fam file. See read_fam().
    """
    cursor = LineCursor(x)
    diagnostics = Diagnostics()
    params = {} if include_params else None

    version = cursor.line(3)
    if verbose:
        print("Familias version:", version)

    has_dvi = "[DVI]" in x
    if use_dvi is None:
        use_dvi = has_dvi
    elif use_dvi and not has_dvi:
        raise FormatError(None, "a DVI section ('[DVI]')", "No DVI section found in input file")
    if verbose:
        print("Read DVI:", "Yes" if use_dvi else "No")
    if params is not None:
        params["version"] = version
        params["dvi"] = bool(use_dvi)

    ### Individuals and genotypes
    nid_line = 4 if cursor.line(4) != "" else 5
    cursor.seek(nid_line)
    nid = cursor.read_int(0, "number of individuals")
    if verbose:
        print("\nNumber of individuals (excluding 'extras'):", nid)
    cursor.advance(1)
    ids, sex, genotypes = parse_individuals(cursor, nid, params=params, verbose=verbose)

    ### Relations and pedigrees
    all_ids, all_sex, fidx, midx = parse_known_relations(cursor, ids, sex)
    pedigrees = parse_pedigrees(cursor, all_ids, all_sex, fidx, midx, verbose=verbose)

    flag_line = cursor.peek(0) or ""
    if flag_line.startswith("#TRUE#"):
        raise UnsupportedFeatureError("This file includes precomputed probabilities; this is not supported yet")

    theta = extract_labeled_number(flag_line, "Theta/Kinship/Fst: ")
    if params is not None:
        params["theta"] = theta
    elif theta is not None and theta > 0:
        diagnostics.warn(f"Nonzero theta correction detected: theta = {theta:g}")
    cursor.advance(1)

    ### Database
    loci = parse_database(cursor, fallback_model, diagnostics, params=params, verbose=verbose)

    ### DVI
    if use_dvi:
        if verbose:
            print("\n*** Reading DVI section ***")
        dvi_start = x.index("[DVI]")
        families = read_dvi(x[dvi_start:], deduplicate=deduplicate, verbose=verbose,
                            first_line=dvi_start + 1)
        if verbose:
            print("*** Finished DVI section ***\n")
            print("Converting to `ped` format")
        res = {}
        for name, fam in tqdm(families.items(), desc="Converting families", disable=not verbose):
            res[name] = familias2ped(fam.pedigrees, datamatrix=fam.datamatrix, loci=loci,
                                     match_loci=True, prefix_added=prefix_added)
        if x_chrom:
            if verbose:
                print("Changing all chromosome attributes to `X`")
            set_chrom(res)
        return FamResult(res, params, diagnostics)

    ### Not DVI
    if pedigrees is None:
        if verbose:
            print("\nReturning database only")
        res = read_familias_loci(loci)
    else:
        if verbose:
            print("\nConverting to `ped` format")
        datamatrix = build_genotype_table(ids, genotypes, loci)
        res = familias2ped(pedigrees, datamatrix=datamatrix, loci=loci, prefix_added=prefix_added)
        if simplify1 and isinstance(res, dict):
            res = unwrap_single(res)

    if x_chrom:
        if verbose:
            print("Changing all chromosome attributes to `X`")
        set_chrom(res)

    return FamResult(res, params, diagnostics)
