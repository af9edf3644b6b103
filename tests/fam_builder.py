"""Helpers for writing synthetic .fam files in tests."""
import os
import tempfile

INFO = "{n}\t(DatabaseSize = 600 , Dropout probability = 0.05 , Minor allele frequency = 0.01 )"


def individual_lines(iid, male, genotypes=(), consider_dropouts=False):
    lines = [iid, "", "(Consider dropouts)" if consider_dropouts else "", "",
             "#TRUE#" if male else "#FALSE#", str(len(genotypes))]
    for a1, a2, m in genotypes:
        lines += [str(a1), str(a2), str(m)]
    return lines


def locus_lines(name, alleles, freqs, rates=(0.001, 0.002), codes=(0, 0), ranges=(0.5, 0.5),
                rates2=(0, 0), silent=False, info=None):
    lines = [name, str(rates[0]), str(rates[1]), str(codes[0]), str(codes[1]),
             str(len(alleles) + 1), str(ranges[0]), str(ranges[1]), str(rates2[0]), str(rates2[1]),
             "#TRUE#" if silent else "#FALSE#", "0",
             info if info is not None else INFO.format(n=len(alleles))]
    for a, f in zip(alleles, freqs):
        lines += [str(a), str(f)]
    return lines


def fam_lines(individuals=(), extras=(0, 0), relations=(), pedigrees=(), loci=(), theta=0,
              probs=False, db_name="TestDB", dvi=None, version="3.2.8", blank_line4=False):
    """
    Build the lines of a .fam file.

    individuals : list of individual_lines() outputs
    relations : list of (parent index, child index), 0-based
    pedigrees : list of (name, n_extra_females, n_extra_males, relations)
    loci : list of locus_lines() outputs
    """
    lines = ["[Familias]", "Familias file", version]
    if blank_line4:
        lines.append("")
    lines.append(str(len(individuals)))
    for ind in individuals:
        lines += ind

    lines += ["Known relations", str(extras[0]), str(extras[1]), str(len(relations))]
    for p, c in relations:
        lines += [str(p), str(c)]

    lines.append(str(len(pedigrees)))
    for k, (name, n_fem, n_mal, rels) in enumerate(pedigrees):
        lines += [str(k), name, str(n_fem), str(n_mal), str(len(rels))]
        for p, c in rels:
            lines += [str(p), str(c)]

    lines.append(("#TRUE#" if probs else "#FALSE#") + f"\tTheta/Kinship/Fst: {theta}")
    lines.append(str(len(loci)))
    lines += ["#TRUE#", db_name] if db_name else ["#FALSE#"]
    for loc in loci:
        lines += loc
    if dvi:
        lines += dvi
    return lines


def paternity_lines(**kwargs):
    """Mother, daughter and alleged father (AF), one locus with two alleles."""
    individuals = [
        individual_lines("mother", False, [(0, 1, 0)], consider_dropouts=True),
        individual_lines("daughter", False, [(0, 0, 0)]),
        individual_lines("AF", True),
    ]
    loci = [locus_lines("M1", ["8", "9"], [0.4, 0.6])]
    args = dict(individuals=individuals, relations=[(0, 1), (2, 1)], loci=loci)
    args.update(kwargs)
    return fam_lines(**args)


def write_fam(lines, quote_ids=()):
    """Write lines to a temporary .fam file, optionally quoting some lines."""
    lines = [f'"{x}"' if x in quote_ids else x for x in lines]
    fd, path = tempfile.mkstemp(suffix=".fam")
    with os.fdopen(fd, "w") as f:
        f.write("\n".join(lines) + "\n")
    return path


DVI_LINES = [
    "[DVI]",
    "[[Unidentified persons]]",
    "nPersons= 1",
    "[[[Victim 1]]]",
    "Name= V1",
    "Gender= Male",
    "[[[[DNA data]]]]",
    "SystemName= M1",
    "Allele1= 8",
    "Allele2= 9",
    "",
    "[[Reference Families]]",
    "nFamilies= 1",
    "[[[Family 1]]]",
    "Name= F1",
    "[[[[Persons]]]]",
    "nPersons= 2",
    "[[[[[Person 1]]]]]",
    "Name= R1",
    "Gender= Female",
    "[[[[[[DNA data]]]]]]",
    "SystemName= M1",
    "Allele1= 8",
    "Allele2= 8",
    "[[[[[Person 2]]]]]",
    "Name= R2",
    "Gender= Male",
    "[[[[Pedigrees]]]]",
    "nPedigrees= 2",
    "[[[[[Pedigree 1]]]]]",
    "Name= Reference pedigree",
    "Parent= R2",
    "Child= R1",
    "[[[[[Pedigree 2]]]]]",
    "Name= Missing person",
    "Parent= R2",
    "Child= R1",
]
