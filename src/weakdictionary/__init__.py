from .equivalence import (
    IdentityEquivalence,
    KeyEquivalence,
    LivenessAwareEquivalence,
    NaturalEquivalence,
)
from .weakdict import DuplicateKey, InvalidArgument, WeakDictionary

__all__ = [
    "DuplicateKey",
    "IdentityEquivalence",
    "InvalidArgument",
    "KeyEquivalence",
    "LivenessAwareEquivalence",
    "NaturalEquivalence",
    "WeakDictionary",
]
