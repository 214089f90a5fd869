from .key_tag import Metric, SplitKey, canonical_pair, is_standard, pair, split, tag, tag_chain

__all__ = ["Metric", "SplitKey", "canonical_pair", "is_standard", "pair", "split", "tag", "tag_chain"]
