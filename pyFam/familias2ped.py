import pandas as pd

from .database import FamiliasLocus
from .familias_pedigree import FamiliasPedigree, SEX_CODES

UNTYPED = "0"
ID_COLS = ["id", "fid", "mid", "sex"]


class Ped:
    """
    A connected pedigree where every member has 0 or 2 parents, with
    marker data attached.

    `ped_df` has columns id, fid, mid, sex (1 = male, 2 = female,
    0 = unknown) followed by two allele columns per marker. Missing parents
    and untyped alleles are "0".
    """
    def __init__(self, ped_df, markers=None, added=None):
        """
        Parameters:
        ped_df : pd.DataFrame
            Pedigree table
        markers : list[dict], optional
            Locus attributes, as returned by read_familias_loci()
        added : list[str], optional
            Ids of parents added during conversion
        """
        self.ped_df = ped_df.reset_index(drop=True)
        self.markers = markers or []
        self.added = list(added or [])

    @property
    def ids(self):
        return self.ped_df["id"].tolist()

    @property
    def allele_columns(self):
        return [c for c in self.ped_df.columns if c not in ID_COLS]

    def __len__(self):
        return len(self.ped_df)

    def founders(self):
        df = self.ped_df
        return df.loc[(df["fid"] == "0") & (df["mid"] == "0"), "id"].tolist()

    def nonfounders(self):
        df = self.ped_df
        return df.loc[(df["fid"] != "0") & (df["mid"] != "0"), "id"].tolist()

    def typed_members(self):
        cols = self.allele_columns
        if not cols:
            return []
        typed = (self.ped_df[cols] != UNTYPED).any(axis=1)
        return self.ped_df.loc[typed, "id"].tolist()

    def genotype(self, marker, iid):
        """Allele pair of `iid` at `marker` (untyped alleles are "0")."""
        row = self.ped_df.loc[self.ped_df["id"] == iid].iloc[0]
        return row[f"{marker}.1"], row[f"{marker}.2"]

    def __repr__(self):
        return (f"Ped(n={len(self)}, founders={self.founders()}, "
                f"markers={len(self.markers)}, added={self.added})")


def read_familias_loci(loci):
    """
    Convert FamiliasLocus objects to locus attribute dicts.

    Trivial (identity) mutation matrices are dropped; if both are trivial
    the locus has no mutation model.

    Parameters:
    loci : FamiliasLocus or list of FamiliasLocus

    Returns:
    list[dict] or None
        Each with keys name, alleles, afreq, mutmod
    """
    if loci is None:
        return None
    if isinstance(loci, FamiliasLocus):
        loci = [loci]

    out = []
    for a in loci:
        male = a.male_mutation_matrix
        female = a.female_mutation_matrix
        if male is not None and male.is_trivial():
            male = None
        if female is not None and female.is_trivial():
            female = None
        mutmod = None if male is None and female is None else {"female": female, "male": male}
        out.append({
            "name": a.locusname,
            "alleles": a.allele_labels,
            "afreq": a.afreq,
            "mutmod": mutmod,
        })
    return out


def _locus_names(loci):
    if loci is None:
        return []
    if isinstance(loci, FamiliasLocus):
        loci = [loci]
    return [loc.locusname for loc in loci]


def _allele_matrix(datamatrix, ids, loc_names, match_loci):
    """Allele table with one row per id in `ids`, untyped entries set to "0"."""
    if datamatrix is None:
        cols = [f"{n}.{k}" for n in loc_names for k in (1, 2)]
        return pd.DataFrame(UNTYPED, index=ids, columns=cols)

    dm = pd.DataFrame(datamatrix).copy()
    dm.index = dm.index.astype(str)
    if match_loci:
        cols = [f"{n}.{k}" for n in loc_names for k in (1, 2)]
        dm = dm.reindex(columns=cols)
    elif loc_names:
        if dm.shape[1] != 2 * len(loc_names):
            raise ValueError("When `match_loci` is False, the number of columns in "
                             "`datamatrix` must be 2 * number of loci")
        dm.columns = [f"{n}.{k}" for n in loc_names for k in (1, 2)]

    dm = dm[~dm.index.duplicated()].reindex(ids)
    return dm.astype(object).where(dm.notna(), UNTYPED).map(str)


def connected_components(ped_df):
    """
    Split a pedigree table into connected components.

    Returns:
    list[list[int]]
        Row positions of each component, in order of first member
    """
    ids = ped_df["id"].tolist()
    pos = {iid: k for k, iid in enumerate(ids)}
    root = list(range(len(ids)))

    def find(k):
        while root[k] != k:
            root[k] = root[root[k]]
            k = root[k]
        return k

    for k, (f, m) in enumerate(zip(ped_df["fid"], ped_df["mid"])):
        for par in (f, m):
            if par != "0" and par in pos:
                root[find(k)] = find(pos[par])

    comps = {}
    for k in range(len(ids)):
        comps.setdefault(find(k), []).append(k)
    return list(comps.values())


def familias2ped(familiasped, datamatrix=None, loci=None, match_loci=False, prefix_added="added_"):
    """
    Convert a Familias pedigree, and optionally genotype data, to Ped objects.

    Members with exactly one parent get the other parent added, with id
    `prefix_added` followed by a running number (fathers first). Disconnected
    pedigrees are split into components.

    Parameters:
    familiasped : FamiliasPedigree, or a dict or list of such
        Pedigree(s) to convert
    datamatrix : pd.DataFrame, optional
        Genotype table, one row per individual and two columns per marker
    loci : list[FamiliasLocus], optional
        Marker database
    match_loci : bool, default False
        If True, columns of `datamatrix` are matched to loci by their
        '<locus>.1'/'<locus>.2' names; otherwise they are taken in order
    prefix_added : str, default "added_"
        Prefix for the ids of added parents

    Returns:
    Ped or list[Ped], or a dict/list of these if the input was a dict/list
    """
    kwargs = dict(datamatrix=datamatrix, loci=loci, match_loci=match_loci,
                  prefix_added=prefix_added)
    if isinstance(familiasped, dict):
        return {name: familias2ped(p, **kwargs) for name, p in familiasped.items()}
    if isinstance(familiasped, (list, tuple)):
        return [familias2ped(p, **kwargs) for p in familiasped]
    if not isinstance(familiasped, FamiliasPedigree):
        raise TypeError("The first argument must be a `FamiliasPedigree` or a list of such")

    ### Part 1: pedigree
    ids = familiasped.id
    p = pd.DataFrame({
        "id": ids,
        "fid": [ids[f - 1] if f > 0 else "0" for f in familiasped.findex],
        "mid": [ids[m - 1] if m > 0 else "0" for m in familiasped.mindex],
        "sex": [SEX_CODES[s] for s in familiasped.sex],
    })

    father_missing = p.index[(p["fid"] == "0") & (p["mid"] != "0")]
    mother_missing = p.index[(p["fid"] != "0") & (p["mid"] == "0")]
    n_fath, n_moth = len(father_missing), len(mother_missing)
    new_fathers = [f"{prefix_added}{k}" for k in range(1, n_fath + 1)]
    new_mothers = [f"{prefix_added}{k}" for k in range(n_fath + 1, n_fath + n_moth + 1)]

    if n_fath:
        p.loc[father_missing, "fid"] = new_fathers
    if n_moth:
        p.loc[mother_missing, "mid"] = new_mothers
    if n_fath or n_moth:
        added = pd.DataFrame({
            "id": new_fathers + new_mothers,
            "fid": "0",
            "mid": "0",
            "sex": [1] * n_fath + [2] * n_moth,
        })
        p = pd.concat([p, added], ignore_index=True)

    ### Part 2: genotypes
    loc_names = _locus_names(loci)
    if datamatrix is not None or loc_names:
        alleles = _allele_matrix(datamatrix, p["id"].tolist(), loc_names, match_loci)
        p = pd.concat([p, alleles.reset_index(drop=True)], axis=1)

    ### Part 3: marker attributes
    markers = read_familias_loci(loci)

    comps = connected_components(p)
    added_ids = set(new_fathers + new_mothers)
    peds = []
    for rows in comps:
        sub = p.iloc[rows]
        peds.append(Ped(sub, markers=markers, added=[i for i in sub["id"] if i in added_ids]))
    return peds[0] if len(peds) == 1 else peds


def unwrap_single(x):
    """Remove the outer dict/list layer if it holds a single element."""
    if isinstance(x, dict) and len(x) == 1:
        return next(iter(x.values()))
    if isinstance(x, list) and len(x) == 1:
        return x[0]
    return x


def set_chrom(x, chrom="X"):
    """Set the `chrom` attribute of all markers in a (nested) result."""
    if isinstance(x, Ped):
        x.markers = [dict(m, chrom=chrom) for m in x.markers]
    elif isinstance(x, dict) and "afreq" in x:
        x["chrom"] = chrom
    elif isinstance(x, dict):
        for v in x.values():
            set_chrom(v, chrom)
    elif isinstance(x, list):
        for v in x:
            set_chrom(v, chrom)
    return x
