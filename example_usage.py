import warnings

import pyFam


def main():

    # Step 1: Read the .fam file
    '''
    Parameters:
    famfile : str, Path or URL to a .fam file.
    use_dvi : bool or None, default None, Parse the DVI section if present.
    x_chrom : bool, default False, Mark all loci as X-chromosomal.
    prefix_added : str, default "added_", Prefix for ids of added parents.
    fallback_model : str, default "equal", Used when a stepwise model cannot be applied.
    simplify1 : bool, default True, Unwrap single-pedigree results.
    deduplicate : bool, default True, Drop redundant 'Reference pedigree' copies (DVI).
    include_params : bool, default False, Also return version, theta, dropout values etc.
    verbose : bool, default True, Print a summary while parsing.
    '''
    with warnings.catch_warnings():
        warnings.simplefilter("always", pyFam.DataIntegrityWarning)
        result = pyFam.read_fam(
            "/path/to/data/paternity.fam",
            include_params=True,
            verbose=True
        )

    # Step 2: Inspect the pedigree(s)
    peds = result.main
    if isinstance(peds, pyFam.Ped):
        peds = {"pedigree": peds}
    for name, ped in peds.items():
        print(name)
        # disconnected pedigrees come back as a list of components
        for comp in (ped if isinstance(ped, list) else [ped]):
            print(comp.ped_df)

    # Step 3: Extra parameters and data integrity warnings
    print("Database:", result.params.get("dbName"))
    print("Theta:", result.params.get("theta"))
    for msg in result.diagnostics:
        print("Warning:", msg)


if __name__ == "__main__":
    main()
