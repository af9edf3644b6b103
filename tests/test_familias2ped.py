import unittest

import numpy as np
import pandas as pd

from pyFam.database import FamiliasLocus
from pyFam.familias2ped import (Ped, connected_components, familias2ped, read_familias_loci,
                                set_chrom, unwrap_single)
from pyFam.familias_pedigree import FamiliasPedigree, as_familias_pedigree
from pyFam.mutation_models import mutation_matrix


def make_locus(name, alleles, afreq, rate=0.0):
    mm = mutation_matrix("equal", alleles, afreq, rate=rate)
    return FamiliasLocus(name, dict(zip(alleles, afreq)), "equal", mm, "equal", mm)


class TestFamiliasPedigree(unittest.TestCase):

    def test_from_codes(self):
        ped = as_familias_pedigree(["f", "m", "c"], [0, 0, 1], [0, 0, 2], [1, 2, 0])
        self.assertEqual(ped.sex, ["male", "female", "unknown"])
        self.assertEqual(ped.father("c"), "f")
        self.assertEqual(ped.mother("c"), "m")
        self.assertEqual(ped.founders(), ["f", "m"])
        self.assertEqual(ped.sex_codes().tolist(), [1, 2, 0])

    def test_empty(self):
        self.assertIsNone(as_familias_pedigree([], [], [], []))

    def test_wrong_parent_sex(self):
        with self.assertRaises(ValueError):
            FamiliasPedigree(["f", "c"], [0, 1], [0, 0], ["female", "male"])

    def test_unequal_lengths(self):
        with self.assertRaises(ValueError):
            FamiliasPedigree(["a", "b"], [0], [0, 0], ["male", "male"])


class TestFamilias2ped(unittest.TestCase):

    def setUp(self):
        self.fam_ped = FamiliasPedigree(id=["mother", "daughter", "AF"],
                                        findex=[0, 3, 0],
                                        mindex=[0, 1, 0],
                                        sex=["female", "female", "male"])
        self.datamatrix = pd.DataFrame({"M1.1": [np.nan, "8", np.nan],
                                        "M1.2": [np.nan, "9.3", np.nan]},
                                       index=self.fam_ped.id)
        self.locus = make_locus("M1", ["8", "9", "9.3"], [0.2, 0.5, 0.3])

    def test_trio(self):
        ped = familias2ped(self.fam_ped, self.datamatrix, loci=[self.locus], match_loci=True)
        self.assertIsInstance(ped, Ped)
        self.assertEqual(ped.ids, ["mother", "daughter", "AF"])
        self.assertEqual(ped.added, [])
        self.assertEqual(ped.ped_df["sex"].tolist(), [2, 2, 1])
        self.assertEqual(ped.genotype("M1", "daughter"), ("8", "9.3"))
        self.assertEqual(ped.genotype("M1", "AF"), ("0", "0"))
        self.assertEqual(ped.typed_members(), ["daughter"])
        self.assertEqual(ped.nonfounders(), ["daughter"])

    def test_missing_parents_added(self):
        fam_ped = FamiliasPedigree(["a", "b", "m"], [0, 1, 0], [3, 0, 0], ["male", "male", "female"])
        peds = familias2ped(fam_ped, prefix_added="x")
        self.assertIsInstance(peds, Ped)
        df = peds.ped_df.set_index("id")
        self.assertEqual(df.loc["a", "fid"], "x1")
        self.assertEqual(df.loc["b", "mid"], "x2")
        self.assertEqual(df.loc["x1", "sex"], 1)
        self.assertEqual(df.loc["x2", "sex"], 2)
        self.assertEqual(peds.added, ["x1", "x2"])

    def test_components(self):
        fam_ped = FamiliasPedigree(["a", "b"], [0, 0], [0, 0], ["male", "female"])
        peds = familias2ped(fam_ped)
        self.assertEqual([p.ids for p in peds], [["a"], ["b"]])

    def test_positional_columns(self):
        dm = pd.DataFrame([["8", "9"], [None, None], [None, None]], index=self.fam_ped.id)
        ped = familias2ped(self.fam_ped, dm, loci=[self.locus])
        self.assertEqual(ped.genotype("M1", "mother"), ("8", "9"))

    def test_positional_columns_mismatch(self):
        dm = pd.DataFrame([["8"], [None], [None]], index=self.fam_ped.id)
        with self.assertRaises(ValueError):
            familias2ped(self.fam_ped, dm, loci=[self.locus])

    def test_without_datamatrix(self):
        ped = familias2ped(self.fam_ped, loci=[self.locus])
        self.assertEqual(ped.allele_columns, ["M1.1", "M1.2"])
        self.assertEqual(ped.typed_members(), [])

    def test_dict_input(self):
        res = familias2ped({"H1": self.fam_ped}, self.datamatrix, loci=[self.locus], match_loci=True)
        self.assertEqual(list(res), ["H1"])
        self.assertIsInstance(unwrap_single(res), Ped)

    def test_bad_input(self):
        with self.assertRaises(TypeError):
            familias2ped("not a pedigree")

    def test_connected_components(self):
        df = pd.DataFrame({"id": ["a", "b", "c", "d"], "fid": ["0", "0", "a", "0"],
                           "mid": ["0", "0", "b", "0"], "sex": [1, 2, 1, 1]})
        self.assertEqual(connected_components(df), [[0, 1, 2], [3]])


class TestLocusAttributes(unittest.TestCase):

    def test_trivial_mutation_dropped(self):
        attrs = read_familias_loci(make_locus("M1", ["8", "9"], [0.5, 0.5]))
        self.assertEqual(attrs, [{"name": "M1", "alleles": ["8", "9"], "afreq": [0.5, 0.5], "mutmod": None}])

    def test_mutation_kept(self):
        attrs = read_familias_loci([make_locus("M1", ["8", "9"], [0.5, 0.5], rate=0.01)])
        self.assertEqual(attrs[0]["mutmod"]["male"].model, "equal")

    def test_set_chrom(self):
        attrs = set_chrom(read_familias_loci([make_locus("M1", ["8"], [1.0])]))
        self.assertEqual(attrs[0]["chrom"], "X")

    def test_unwrap_single(self):
        self.assertEqual(unwrap_single([1]), 1)
        self.assertEqual(unwrap_single({"a": 1}), 1)
        self.assertEqual(unwrap_single([1, 2]), [1, 2])


if __name__ == '__main__':
    unittest.main()
