"""
Epistemic reasoning strategies.

Each strategy is a plain function over a list of atoms with its own
confidence policy:

- deductive: forward chaining over implication links. Conclusions from
  established premises are the most certain.
- inductive: generalizes over atoms that share a type. Probable, never
  certain.
- abductive: explains observations by the premises of rules that would
  produce them. Plausible at best.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..core.models import Atom, AtomType, TruthValue
from .types import ReasoningConfig, ReasoningQuery, ReasoningResult, ReasoningType

logger = logging.getLogger(__name__)

# Implication links without a truth value are treated as weak rules
DEFAULT_RULE_TRUTH = TruthValue(strength=1.0, confidence=0.5)

_Key = Tuple[str, Optional[str]]


def _key(atom: Atom) -> _Key:
    return (atom.type, atom.name)


def _is_rule(atom: Atom) -> bool:
    return atom.type == AtomType.IMPLICATION_LINK.value and len(atom.outgoing) >= 2


def _rule_label(rule: Atom) -> str:
    return rule.id or rule.name or "implication"


def _known_facts(atoms: List[Atom]) -> Dict[_Key, TruthValue]:
    """Truth values of named, non-rule atoms, including those nested in links."""
    facts: Dict[_Key, TruthValue] = {}
    stack = list(atoms)
    while stack:
        atom = stack.pop()
        if atom.truth_value is not None and atom.name and not _is_rule(atom):
            facts.setdefault(_key(atom), atom.truth_value)
        stack.extend(atom.outgoing)
    return facts


def deductive_reasoning(
    atoms: List[Atom],
    query: ReasoningQuery,
    config: ReasoningConfig,
) -> ReasoningResult:
    """
    Modus ponens over ImplicationLink(antecedent, consequent) atoms.

    A premise is established when the antecedent carries a truth value,
    or a matching atom with a truth value is known. Conclusions are fed
    back as premises for up to max_inference_depth rounds.
    """
    rules = [a for a in atoms if _is_rule(a)]
    facts = _known_facts(atoms)
    derived: Dict[_Key, Atom] = {}

    for depth in range(1, config.max_inference_depth + 1):
        new_facts = 0
        for rule in rules:
            antecedent, consequent = rule.outgoing[0], rule.outgoing[1]
            if _key(consequent) in derived:
                continue

            premise = antecedent.truth_value or facts.get(_key(antecedent))
            if premise is None:
                continue

            rule_tv = rule.truth_value or DEFAULT_RULE_TRUTH
            truth = TruthValue(
                strength=rule_tv.strength * premise.strength,
                confidence=min(rule_tv.confidence, premise.confidence) * config.deductive_decay,
            )
            derived[_key(consequent)] = Atom(
                type=consequent.type,
                name=consequent.name,
                truth_value=truth,
                metadata={
                    "derivedBy": ReasoningType.DEDUCTIVE.value,
                    "rule": _rule_label(rule),
                    "premise": antecedent.name,
                    "depth": depth,
                },
            )
            facts.setdefault(_key(consequent), truth)
            new_facts += 1
        if new_facts == 0:
            break

    conclusions = list(derived.values())
    if not conclusions:
        return ReasoningResult(
            conclusion=[],
            confidence=0.0,
            explanation=f"No implication rule had an established premise ({len(rules)} rules checked)",
            metadata={"reasoningType": ReasoningType.DEDUCTIVE.value, "rulesChecked": len(rules)},
        )

    confidence = float(np.mean([c.truth_value.confidence for c in conclusions]))
    return ReasoningResult(
        conclusion=conclusions,
        confidence=min(config.deductive_ceiling, confidence),
        explanation=(
            f"Deduced {len(conclusions)} conclusion(s) from {len(rules)} implication rule(s): "
            + ", ".join(str(c.name) for c in conclusions)
        ),
        metadata={
            "reasoningType": ReasoningType.DEDUCTIVE.value,
            "rulesChecked": len(rules),
            "inferenceDepth": max(c.metadata["depth"] for c in conclusions),
        },
    )


def inductive_reasoning(
    atoms: List[Atom],
    query: ReasoningQuery,
    config: ReasoningConfig,
) -> ReasoningResult:
    """Generalize over groups of at least two atoms of the same type."""
    groups: Dict[str, List[Atom]] = defaultdict(list)
    for atom in atoms:
        if atom.outgoing:
            continue
        groups[atom.type].append(atom)

    generalizations = []
    for atom_type, members in groups.items():
        n = len(members)
        if n < 2:
            continue

        strengths = [m.truth_value.strength for m in members if m.truth_value]
        strength = float(np.mean(strengths)) if strengths else 0.5
        confidence = min(config.inductive_ceiling, n / (n + config.inductive_prior))

        generalizations.append(Atom(
            type=AtomType.INHERITANCE_LINK.value,
            name=f"{atom_type}-generalization",
            truth_value=TruthValue(strength=strength, confidence=confidence),
            outgoing=[Atom(type=AtomType.CONCEPT_NODE.value, name=atom_type)],
            metadata={
                "derivedBy": ReasoningType.INDUCTIVE.value,
                "members": [m.name for m in members],
                "supportCount": n,
            },
        ))

    if not generalizations:
        return ReasoningResult(
            confidence=0.0,
            explanation="Not enough instances of any type to generalize",
            metadata={"reasoningType": ReasoningType.INDUCTIVE.value},
        )

    confidence = float(np.mean([g.truth_value.confidence for g in generalizations]))
    return ReasoningResult(
        conclusion=generalizations,
        confidence=min(config.inductive_ceiling, confidence),
        explanation=(
            f"Induced {len(generalizations)} generalization(s) from "
            f"{sum(g.metadata['supportCount'] for g in generalizations)} instances"
        ),
        metadata={"reasoningType": ReasoningType.INDUCTIVE.value},
    )


def abductive_reasoning(
    atoms: List[Atom],
    query: ReasoningQuery,
    config: ReasoningConfig,
) -> ReasoningResult:
    """
    Hypothesize antecedents that would explain observed atoms.

    Observations are the non-link atoms, plus any names listed under
    context["observation"] or context["observations"].
    """
    observed_names = set()
    for key in ("observation", "observations"):
        value = query.context.get(key)
        if isinstance(value, str):
            observed_names.add(value)
        elif isinstance(value, (list, tuple)):
            observed_names.update(str(v) for v in value)

    observed = {_key(a): a for a in atoms if not a.outgoing and a.name}
    rules = [a for a in atoms if _is_rule(a)]

    hypotheses: Dict[_Key, Atom] = {}
    for rule in rules:
        antecedent, consequent = rule.outgoing[0], rule.outgoing[1]
        if _key(consequent) not in observed and consequent.name not in observed_names:
            continue

        rule_tv = rule.truth_value or DEFAULT_RULE_TRUTH
        confidence = min(config.abductive_ceiling, rule_tv.strength * config.abductive_factor)
        existing = hypotheses.get(_key(antecedent))
        if existing and existing.truth_value.confidence >= confidence:
            continue

        hypotheses[_key(antecedent)] = Atom(
            type=antecedent.type,
            name=antecedent.name,
            truth_value=TruthValue(strength=rule_tv.strength, confidence=confidence),
            metadata={
                "derivedBy": ReasoningType.ABDUCTIVE.value,
                "explains": consequent.name,
                "rule": _rule_label(rule),
            },
        )

    if not hypotheses:
        return ReasoningResult(
            confidence=0.0,
            explanation="No rule explains the observations",
            metadata={"reasoningType": ReasoningType.ABDUCTIVE.value},
        )

    conclusions = list(hypotheses.values())
    confidence = float(np.mean([h.truth_value.confidence for h in conclusions]))
    return ReasoningResult(
        conclusion=conclusions,
        confidence=min(config.abductive_ceiling, confidence),
        explanation=(
            f"Abduced {len(conclusions)} hypothesis(es): "
            + ", ".join(f"{h.name} explains {h.metadata['explains']}" for h in conclusions)
        ),
        metadata={"reasoningType": ReasoningType.ABDUCTIVE.value},
    )
