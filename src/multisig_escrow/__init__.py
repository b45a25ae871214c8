"""Multisig Escrow: quorum-approved transfers out of a jointly held vault."""

__version__ = "0.1.0"
