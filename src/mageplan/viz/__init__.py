"""Visualization utilities.

Plotting helpers for prevalence/screening tables:

- Genotype prevalence by replacement count, faceted by MAGE cycles
- Colonies to screen versus MAGE cycles, faceted by replacement count

All plots are saved to disk so they work in headless CI/CD environments.
"""
