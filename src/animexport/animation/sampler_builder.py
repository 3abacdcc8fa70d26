"""
Sampler/Channel Builder

Assigns sampler indices to (node, property) pairs and builds the channel
and sampler records of an animation.
"""

from typing import Dict, Iterable, List, Tuple

from .animation import AnimationRecord, ChannelRecord, InterpolationType, PropertyTarget, SamplerRecord

ChannelKey = Tuple[int, PropertyTarget]


class SamplerChannelBuilder:
    """
    First-seen-order sampler allocation.

    One sampler per distinct (node, target) pair, however many axis
    curves feed it. Indices are dense and deterministic for a fixed
    binding order.
    """

    def __init__(self):
        self._indices: Dict[ChannelKey, int] = {}

    def sampler_index(self, node: int, target: PropertyTarget) -> int:
        """Return the sampler index for a pair, allocating the next one if new."""
        key = (node, target)
        if key not in self._indices:
            self._indices[key] = len(self._indices)
        return self._indices[key]

    @property
    def keys(self) -> List[ChannelKey]:
        """Pairs in allocation order."""
        return sorted(self._indices, key=self._indices.__getitem__)

    def __len__(self):
        return len(self._indices)

    def build(
        self,
        name: str,
        interpolations: Dict[ChannelKey, InterpolationType],
        emitted: Iterable[ChannelKey],
    ) -> Tuple[AnimationRecord, Dict[ChannelKey, int]]:
        """
        Build the animation record for the pairs that survived encoding.

        Pairs that were dropped (empty or failed buckets) leave no gap:
        surviving samplers are renumbered densely in allocation order.

        Args:
            name: Animation name
            interpolations: Interpolation per pair
            emitted: Pairs that have encoded data

        Returns:
            (record, pair -> final sampler index)
        """
        emitted = set(emitted)
        record = AnimationRecord(name=name)
        final_indices: Dict[ChannelKey, int] = {}

        for key in self.keys:
            if key not in emitted:
                continue
            index = len(record.samplers)
            final_indices[key] = index
            record.samplers.append(SamplerRecord(interpolation=interpolations[key]))
            node, target = key
            record.channels.append(ChannelRecord(node=node, target=target, sampler=index))

        return record, final_indices
