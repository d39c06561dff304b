"""Target peptide catalog and product-name matching."""

import re
from dataclasses import dataclass
from typing import Optional

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class TargetPeptide:
    name: str
    slug: str
    search_terms: tuple[str, ...]


# Order matters: the first peptide with a matching alias wins.
TARGET_PEPTIDES: tuple[TargetPeptide, ...] = (
    TargetPeptide("Semaglutide", "semaglutide", ("semaglutide", "ozempic", "wegovy", "glp-1 s", "glp-1s")),
    TargetPeptide("Tirzepatide", "tirzepatide", ("tirzepatide", "mounjaro", "glp-2 t", "glp-2t")),
    TargetPeptide("Retatrutide", "retatrutide", ("retatrutide", "glp-3 r", "glp-3r")),
    TargetPeptide("BPC-157", "bpc-157", ("bpc-157", "bpc157", "body protection compound")),
    TargetPeptide("TB-500", "tb-500", ("tb-500", "tb500", "thymosin beta")),
    TargetPeptide("Ipamorelin", "ipamorelin", ("ipamorelin",)),
    TargetPeptide("CJC-1295 (no DAC)", "cjc-1295-no-dac", ("cjc-1295", "cjc1295", "mod grf")),
    TargetPeptide("CJC-1295 (DAC)", "cjc-1295-dac", ("cjc-1295 dac", "cjc1295 dac", "drug affinity complex")),
    TargetPeptide("Melanotan II", "melanotan-ii", ("melanotan ii", "melanotan 2", "mt2", "mt 2")),
    TargetPeptide("PT-141", "pt-141", ("pt-141", "pt141", "bremelanotide")),
    TargetPeptide("AOD-9604", "aod-9604", ("aod-9604", "aod9604")),
    TargetPeptide("GHK-Cu", "ghk-cu", ("ghk-cu", "ghkcu", "copper peptide")),
    TargetPeptide("GHRP-2", "ghrp-2", ("ghrp-2", "ghrp2")),
    TargetPeptide("GHRP-6", "ghrp-6", ("ghrp-6", "ghrp6")),
    TargetPeptide("Hexarelin", "hexarelin", ("hexarelin",)),
    TargetPeptide("MK-677", "mk-677", ("mk-677", "mk677", "ibutamoren")),
    TargetPeptide("Semax", "semax", ("semax",)),
    TargetPeptide("Selank", "selank", ("selank",)),
    TargetPeptide("Epithalon", "epithalon", ("epithalon", "epitalon")),
    TargetPeptide("MOTS-c", "mots-c", ("mots-c", "motsc")),
    TargetPeptide("Tesofensine", "tesofensine", ("tesofensine",)),
    TargetPeptide("5-Amino-1MQ", "5-amino-1mq", ("5-amino-1mq", "5-amino")),
    TargetPeptide("NAD+", "nad-plus", ("nad+", "nad plus", "nicotinamide")),
    TargetPeptide("DSIP", "dsip", ("dsip", "delta sleep")),
    TargetPeptide("Sermorelin", "sermorelin", ("sermorelin",)),
    TargetPeptide("Fragment 176-191", "fragment-176-191", ("fragment 176-191", "hgh fragment", "frag 176")),
    TargetPeptide("KPV", "kpv", ("kpv", "kpv tripeptide")),
    TargetPeptide("LL-37", "ll-37", ("ll-37", "ll37", "cathelicidin")),
    TargetPeptide("Tesamorelin", "tesamorelin", ("tesamorelin", "egrifta")),
    TargetPeptide("Kisspeptin-10", "kisspeptin-10", ("kisspeptin", "kiss-10")),
    TargetPeptide("Thymulin", "thymulin", ("thymulin",)),
    TargetPeptide("IGF-1 LR3", "igf-1-lr3", ("igf-1 lr3", "igf1 lr3", "long r3")),
    TargetPeptide("Follistatin 344", "follistatin-344", ("follistatin 344", "follistatin-344", "fs344")),
)

_BY_NAME = {p.name: p for p in TARGET_PEPTIDES}

# Aliases normalized once, in catalog order
_NORMALIZED_TERMS: list[tuple[TargetPeptide, tuple[str, ...]]] = []


def normalize_name(name: str) -> str:
    """Lowercase and drop everything that isn't a-z or 0-9.

    'BPC-157 5mg Vial' → 'bpc1575mgvial'
    """
    if not name:
        return ""
    return _NON_ALNUM_RE.sub("", name.lower())


def _normalized_terms() -> list[tuple[TargetPeptide, tuple[str, ...]]]:
    if not _NORMALIZED_TERMS:
        for peptide in TARGET_PEPTIDES:
            terms = tuple(t for t in (normalize_name(s) for s in peptide.search_terms) if t)
            _NORMALIZED_TERMS.append((peptide, terms))
    return _NORMALIZED_TERMS


def find_matching_peptide(product_name: str) -> Optional[TargetPeptide]:
    """Return the first catalog peptide whose alias appears in the product name."""
    normalized = normalize_name(product_name)
    if not normalized:
        return None
    for peptide, terms in _normalized_terms():
        for term in terms:
            if term in normalized:
                return peptide
    return None


def slug_for_name(name: str) -> Optional[str]:
    peptide = _BY_NAME.get(name)
    return peptide.slug if peptide else None
