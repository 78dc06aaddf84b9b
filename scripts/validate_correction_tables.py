#!/usr/bin/env python3
"""Validate TPR and output factor (Scp) correction tables."""

import sys
import argparse
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
from RTSecondCheck.physics import CorrectionTables
from RTSecondCheck.physics_data import DEFAULT_TPR_TABLE, DEFAULT_SCP_TABLE
from RTSecondCheck.utils import SecondCheckError


def validate_tpr(tables: CorrectionTables) -> bool:
    """Check the TPR grid for physically plausible behaviour."""
    print("=" * 60)
    print("Validating TPR Table")
    print("=" * 60)
    print(f"Source: {tables.tpr_source}")
    print(f"  Depths: {tables.depths.size} ({tables.depth_range[0]:g} - {tables.depth_range[1]:g} cm)")
    print(f"  Field sizes: {tables.tpr_field_sizes.size} "
          f"({tables.tpr_field_sizes[0]:g} - {tables.tpr_field_sizes[-1]:g} cm)")
    
    ok = True
    
    # Normalisation depth: TPR = 1 for every field size
    normalised = np.where(np.all(np.isclose(tables.tpr_values, 1.0, atol=1e-4), axis=1))[0]
    if normalised.size:
        print(f"  ✓ Normalised at depth {tables.depths[normalised[0]]:g} cm")
        dmax_index = normalised[0]
    else:
        print("  ✗ No depth where TPR = 1 for all field sizes")
        dmax_index = int(np.argmax(tables.tpr_values[:, 0]))
        ok = False
    
    beyond = tables.tpr_values[dmax_index:]
    if np.all(np.diff(beyond, axis=0) <= 0):
        print("  ✓ TPR decreases with depth beyond the normalisation depth")
    else:
        print("  ✗ TPR increases with depth beyond the normalisation depth")
        ok = False
    
    if np.all(np.diff(beyond[1:], axis=1) >= 0):
        print("  ✓ TPR increases with field size at every depth")
    else:
        print("  ✗ TPR decreases with field size at some depth")
        ok = False
    
    return ok


def validate_scp(tables: CorrectionTables) -> bool:
    """Check the output factor curve."""
    print("\n" + "=" * 60)
    print("Validating Scp Table")
    print("=" * 60)
    print(f"Source: {tables.scp_source}")
    print(f"  Field sizes: {tables.scp_field_sizes.size} "
          f"({tables.scp_field_sizes[0]:g} - {tables.scp_field_sizes[-1]:g} cm)")
    
    ok = True
    
    if np.all(np.diff(tables.scp_values) > 0):
        print("  ✓ Scp increases with field size")
    else:
        print("  ✗ Scp is not increasing with field size")
        ok = False
    
    reference = np.where(np.isclose(tables.scp_values, 1.0, atol=1e-4))[0]
    if reference.size:
        print(f"  ✓ Normalised at field size {tables.scp_field_sizes[reference[0]]:g} cm")
    else:
        print("  ✗ No field size with Scp = 1")
        ok = False
    
    if np.array_equal(tables.scp_field_sizes, tables.tpr_field_sizes):
        print("  ✓ Field size axis matches the TPR table")
    else:
        low, high = tables.field_size_range
        print(f"  ! Field size axes differ, common range {low:g} - {high:g} cm")
    
    return ok


def main():
    """Run all validations."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--tpr', default=DEFAULT_TPR_TABLE, help='TPR table CSV')
    parser.add_argument('--scp', default=DEFAULT_SCP_TABLE, help='Scp table CSV')
    args = parser.parse_args()
    
    print("\n" + "=" * 60)
    print("Correction Table Validation Suite")
    print("=" * 60 + "\n")
    
    try:
        tables = CorrectionTables.from_csv(args.tpr, args.scp)
    except SecondCheckError as e:
        print(f"✗ Could not load tables: {e}")
        return 1
    
    tpr_ok = validate_tpr(tables)
    scp_ok = validate_scp(tables)
    
    print("\n" + "=" * 60)
    print("Validation Summary")
    print("=" * 60)
    print(f"TPR table: {'✓ PASSED' if tpr_ok else '✗ FAILED'}")
    print(f"Scp table: {'✓ PASSED' if scp_ok else '✗ FAILED'}")
    
    if tpr_ok and scp_ok:
        print("\n✓ All validations PASSED")
        return 0
    else:
        print("\n✗ Some validations FAILED")
        return 1


if __name__ == '__main__':
    sys.exit(main())
