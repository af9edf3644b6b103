import numpy as np

MALE = 1
FEMALE = 2
UNKNOWN = 0

SEX_LABELS = {MALE: "male", FEMALE: "female", UNKNOWN: "unknown"}
SEX_CODES = {v: k for k, v in SEX_LABELS.items()}


class FamiliasPedigree:
    """
    Index-based pedigree, as used by Familias.

    The four sequences have equal length. `findex[i]` and `mindex[i]` are
    either 0 (no parent recorded) or the 1-based position of the father
    (resp. mother) of individual i.
    """
    def __init__(self, id, findex, mindex, sex):
        """
        Initialize a pedigree.

        Parameters:
        id : list[str]
            Individual ids
        findex : list[int]
            1-based father indices, 0 = no father
        mindex : list[int]
            1-based mother indices, 0 = no mother
        sex : list[str]
            "male", "female" or "unknown" for each individual
        """
        n = len(id)
        if not (len(findex) == len(mindex) == len(sex) == n):
            raise ValueError("id, findex, mindex and sex must have equal length")
        self.id = [str(i) for i in id]
        self.findex = [int(f) for f in findex]
        self.mindex = [int(m) for m in mindex]
        self.sex = list(sex)

        for i in range(n):
            self._check_parent(i, self.findex[i], "male", "father")
            self._check_parent(i, self.mindex[i], "female", "mother")

    def _check_parent(self, i, pidx, expected_sex, role):
        if pidx == 0:
            return
        if not 1 <= pidx <= len(self.id):
            raise ValueError(f"{role} index {pidx} of '{self.id[i]}' is out of range")
        if self.sex[pidx - 1] != expected_sex:
            raise ValueError(f"{role} of '{self.id[i]}' ('{self.id[pidx - 1]}') is not {expected_sex}")

    def __len__(self):
        return len(self.id)

    def father(self, iid):
        f = self.findex[self.id.index(iid)]
        return self.id[f - 1] if f > 0 else None

    def mother(self, iid):
        m = self.mindex[self.id.index(iid)]
        return self.id[m - 1] if m > 0 else None

    def founders(self):
        return [iid for iid, f, m in zip(self.id, self.findex, self.mindex) if f == 0 and m == 0]

    def sex_codes(self):
        return np.array([SEX_CODES[s] for s in self.sex], dtype=int)

    def __eq__(self, other):
        if not isinstance(other, FamiliasPedigree):
            return NotImplemented
        return (self.id == other.id and self.findex == other.findex
                and self.mindex == other.mindex and self.sex == other.sex)

    def __repr__(self):
        return (f"FamiliasPedigree(id={self.id}, "
                f"findex={self.findex}, "
                f"mindex={self.mindex}, "
                f"sex={self.sex})")


def as_familias_pedigree(id, findex, mindex, sex):
    """
    Create a FamiliasPedigree from parallel sequences.

    `sex` may be given as integer codes (1 = male, 2 = female, 0 = unknown)
    or as labels. Scalar `findex`/`mindex` are recycled. Returns None if
    there are no individuals.
    """
    if len(id) == 0:
        return None
    n = len(id)
    if np.isscalar(findex):
        findex = [findex] * n
    if np.isscalar(mindex):
        mindex = [mindex] * n
    sex = [SEX_LABELS.get(int(s), "unknown") if not isinstance(s, str) else s for s in sex]
    return FamiliasPedigree(id, findex, mindex, sex)
