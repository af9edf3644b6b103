from .exceptions import FamError, UnsupportedFeatureError
from .mutation_models import (FALLBACK_CODES, FAMILIAS_MODELS, StabilizationError,
                              mutation_matrix, stabilize)
from .utils import extract_labeled_number, safe_num

# Lines per locus before the allele/frequency pairs
LOCUS_HEADER_LINES = 13


class FamiliasLocus:
    """
    A marker from the Familias database.

    `alleles` maps allele label -> frequency, in file order. The mutation
    types are Familias model names ("equal", "prop", "step-stationary", ...).
    """
    def __init__(self, locusname, alleles, female_mutation_type, female_mutation_matrix,
                 male_mutation_type, male_mutation_matrix):
        self.locusname = locusname
        self.alleles = alleles
        self.female_mutation_type = female_mutation_type
        self.female_mutation_matrix = female_mutation_matrix
        self.male_mutation_type = male_mutation_type
        self.male_mutation_matrix = male_mutation_matrix

    @property
    def allele_labels(self):
        return list(self.alleles)

    @property
    def afreq(self):
        return list(self.alleles.values())

    def __repr__(self):
        return (f"FamiliasLocus({self.locusname}, {len(self.alleles)} alleles, "
                f"female={self.female_mutation_type}, male={self.male_mutation_type})")


def stepwise_violation(alleles):
    """
    Check if alleles are compatible with a stepwise mutation model.

    Returns None if all alleles are numerical, >= 1 and have at most one
    decimal; otherwise a tuple (offending allele, message) for the first rule
    that fails, in the order non-numerical, less than one, microvariant.
    """
    nums = [safe_num(a) for a in alleles]
    for a, v in zip(alleles, nums):
        if v is None:
            return a, "Non-numerical allele '%s' incompatible with stepwise model" % a
    for a, v in zip(alleles, nums):
        if v < 1:
            return a, "Allele '%s' incompatible with stepwise model" % a
    for a, v in zip(alleles, nums):
        if round(v, 1) != v:
            return a, "Illegal microvariant '%s'" % a
    return None


def _build_matrix(locname, kind, alleles, frqs, rate, rate2, mutation_range):
    try:
        return mutation_matrix(kind, alleles, frqs, rate, rate2=rate2,
                               mutation_range=mutation_range)
    except ValueError as e:
        raise FamError(f"Database error, locus {locname}: {e}") from e


def _mutation_summary(loc):
    fem, mal = loc.female_mutation_matrix, loc.male_mutation_matrix
    fname, mname = loc.female_mutation_type, loc.male_mutation_type

    def stepwise_txt(m):
        return ", range = %.2g, rate2 = %.2g" % (m.mutation_range or 0, m.rate2 or 0)

    if fem == mal:
        txt = "unisex mut model = %s, rate = %.2g" % (mname, mal.rate)
        if mal.model == "stepwise":
            txt += stepwise_txt(mal)
        return txt

    mod = mname if mname == fname else f"{mname}/{fname}"
    rate = "%.2g" % mal.rate if mal.rate == fem.rate else "%.2g/%.2g" % (mal.rate, fem.rate)
    txt = f"mut model (M/F) = {mod}, rate = {rate}"
    if mal.model == "stepwise" and fem.model == "stepwise":
        def pair(a, b):
            a, b = a or 0, b or 0
            return "%.2g" % a if a == b else "%.2g/%.2g" % (a, b)
        txt += ", range = %s, rate2 = %s" % (pair(mal.mutation_range, fem.mutation_range),
                                            pair(mal.rate2, fem.rate2))
    elif mal.model == "stepwise":
        txt += stepwise_txt(mal)
    elif fem.model == "stepwise":
        txt += stepwise_txt(fem)
    return txt


def parse_locus(cursor, fallback_model, diagnostics, params=None):
    """
    Parse one locus starting at the cursor position, and advance the cursor
    past it.

    Parameters:
    cursor : LineCursor
        Positioned at the locus name
    fallback_model : str
        "equal" or "proportional"; replaces stepwise models that cannot be used
    diagnostics : Diagnostics
        Receives data integrity warnings
    params : dict, optional
        If given, the entries 'dbSize', 'dropoutValue' and 'maf' are updated

    Returns:
    FamiliasLocus
    """
    loc_name = cursor.peek(0)
    rate_fem = cursor.read_num(1)
    rate_mal = cursor.read_num(2)
    code_fem = cursor.read_int(3, "an integer code (0-4) for the female mutation model", max_value=4)
    code_mal = cursor.read_int(4, "an integer code (0-4) for the male mutation model", max_value=4)

    # line 5 holds the number of alleles including the silent allele
    range_fem = cursor.read_num(6)
    range_mal = cursor.read_num(7)
    rate2_fem = cursor.read_num(8)
    rate2_mal = cursor.read_num(9)

    if cursor.peek(10) == "#TRUE#":
        raise UnsupportedFeatureError(
            f"Locus {loc_name} has silent frequencies: this is not implemented yet")

    # Info line, e.g. "17\t(DatabaseSize = 600 , Dropout probability = 0 , Minor allele frequency = 0 )"
    info = (cursor.peek(12) or "").split("\t")
    n_all = cursor.read_int(12, f"number of alleles for marker {loc_name}", value=info[0])

    if params is not None:
        extra = info[1] if len(info) > 1 else ""
        dbsize = extract_labeled_number(extra, "DatabaseSize = ", r"\d+")
        if dbsize is not None:
            params.setdefault("dbSize", {})[loc_name] = dbsize
        dropout = extract_labeled_number(extra, "Dropout probability = ")
        if dropout is not None:
            params.setdefault("dropoutValue", {})[loc_name] = dropout
        maf = extract_labeled_number(extra, "Minor allele frequency = ")
        if maf is not None:
            params.setdefault("maf", {})[loc_name] = maf

    start = LOCUS_HEADER_LINES
    als = [cursor.peek(start + 2 * k) for k in range(n_all)]
    frqs = [cursor.read_num(start + 2 * k + 1) for k in range(n_all)]

    if "0" in als:
        diagnostics.warn(f"Database error, locus {loc_name}: Illegal allele '0'. Changed to 'z'.")
        als = ["z" if a == "0" else a for a in als]

    # Stepwise models need numerical alleles; otherwise switch both sexes
    if code_fem > 1 or code_mal > 1:
        bad = stepwise_violation(als)
        if bad is not None:
            diagnostics.warn(f"Database error, locus {loc_name}: {bad[1]}. "
                             f"Changed to '{fallback_model}' model.")
            code_fem = code_mal = FALLBACK_CODES[fallback_model]

    alleles = dict(zip(als, frqs))

    mal_name, mal_kind = FAMILIAS_MODELS[code_mal]
    fem_name, fem_kind = FAMILIAS_MODELS[code_fem]
    mal_mat = _build_matrix(loc_name, mal_kind, als, frqs, rate_mal, rate2_mal, range_mal)
    fem_mat = _build_matrix(loc_name, fem_kind, als, frqs, rate_fem, rate2_fem, range_fem)

    fallback_name = FAMILIAS_MODELS[FALLBACK_CODES[fallback_model]][0]
    if mal_name == "step-stationary":
        try:
            mal_mat = stabilize(mal_mat, method="PM")
        except StabilizationError:
            diagnostics.warn(f"Database error, locus {loc_name}: Cannot stabilize mutation matrix. "
                             f"Changed to '{fallback_model}' model.")
            mal_mat = _build_matrix(loc_name, fallback_model, als, frqs, rate_mal, None, None)
            mal_name = fallback_name

    if fem_name == "step-stationary":
        try:
            fem_mat = stabilize(fem_mat, method="PM")
        except StabilizationError:
            diagnostics.warn(f"Database error, locus {loc_name}: Cannot stabilize female mutation matrix. "
                             f"Changed to '{fallback_model}' model.")
            fem_mat = _build_matrix(loc_name, fallback_model, als, frqs, rate_fem, None, None)
            fem_name = fallback_name

    cursor.advance(LOCUS_HEADER_LINES + 2 * n_all)

    return FamiliasLocus(loc_name, alleles,
                         female_mutation_type=fem_name, female_mutation_matrix=fem_mat,
                         male_mutation_type=mal_name, male_mutation_matrix=mal_mat)


def parse_database(cursor, fallback_model, diagnostics, params=None, verbose=True):
    """
    Parse the marker database, starting at the line holding the number of loci.

    Returns:
    list[FamiliasLocus]
    """
    n_loc = cursor.read_int(0, "number of loci")
    has_info = cursor.peek(1) == "#TRUE#"
    db_name = cursor.peek(2) if has_info else ""
    if verbose:
        if has_info:
            print("\nDatabase:", db_name)
        else:
            print()
        print("Number of loci:", n_loc)
    if params is not None:
        params["dbName"] = db_name

    cursor.advance(2 + int(has_info))
    loci = []
    for _ in range(n_loc):
        loc = parse_locus(cursor, fallback_model, diagnostics, params=params)
        if verbose:
            print("  %s: %d alleles, %s" % (loc.locusname, len(loc.alleles), _mutation_summary(loc)))
        loci.append(loc)
    return loci
