#!/usr/bin/env python3
"""
Indexed-gather operators: ``items[k] = array[indices[k]]``.

Indices may repeat, so several items can share one array slot. Products of
item messages are therefore kept per slot: a slot plays the role of the
definition in a replicate factor and the items mapped to it are its uses.
Slots are independent of each other.
"""

import logging
import numpy as np
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence

from ..arguments import Constant, classify, classify_all
from ..buffers import Buffer
from ..errors import AllZeroError, ShapeMismatchError
from ..evidence import product_with_all
from ..metadata import factor_operator
from ..outcomes import Ok, try_ratio, unwrap
from ..settings import settings

logger = logging.getLogger(__name__)


def check_indices(items: Sequence[Any], array: Sequence[Any], indices: Sequence[int]) -> None:
    """Validate that items and indices line up and every index addresses the array."""
    if len(items) != len(indices):
        raise ShapeMismatchError(f"{len(items)} items but {len(indices)} indices")
    for k, index in enumerate(indices):
        if not 0 <= index < len(array):
            raise ShapeMismatchError(f"indices[{k}] = {index} outside 0..{len(array) - 1}")


def slot_groups(indices: Sequence[int]) -> Dict[int, List[int]]:
    """Item positions grouped by the array slot they read, in item order."""
    groups: Dict[int, List[int]] = OrderedDict()
    for k, index in enumerate(indices):
        groups.setdefault(index, []).append(k)
    return groups


class GetItemsOp:
    """Messages for ``items = array[indices]`` with a per-slot ``marginal`` buffer."""

    @staticmethod
    @factor_operator("GetItems", "evidence", "evidence")
    def log_average_factor(items: Sequence[Any], array: Sequence[Any], indices: Sequence[int]) -> float:
        """Log of the factor averaged over the message arguments.

        Items of one slot are folded into a running product in item order;
        different slots contribute independently.
        """
        check_indices(items, array, indices)
        items_arg, array_arg = classify_all(items), classify_all(array)

        if isinstance(items_arg, Constant) and isinstance(array_arg, Constant):
            for k, index in enumerate(indices):
                if items[k] != array[index]:
                    return -np.inf
            return 0.0

        if isinstance(array_arg, Constant):
            return float(sum(items[k].log_prob(array[index]) for k, index in enumerate(indices)))

        z = 0.0
        for slot, members in slot_groups(indices).items():
            if isinstance(items_arg, Constant):
                # After the first item the slot is pinned to that item's value
                value = array[slot]
                for k in members:
                    z += value.log_prob(items[k])
                    value = value.point_mass(items[k])
            else:
                value = array[slot]
                for k in members:
                    z += value.log_average_of(items[k])
                    value = value * items[k]
        return z

    @staticmethod
    @factor_operator("GetItems", "evidence", "evidence", fresh=("to_items",))
    def log_evidence_ratio(items: Sequence[Any], array: Sequence[Any], indices: Sequence[int],
                           to_items: Optional[Sequence[Any]] = None) -> float:
        """Evidence contribution of the factor.

        With random items this is the log-average minus
        ``Σ_k log ∫ to_items[k]·items[k]``, which needs the fresh messages
        to items.
        """
        check_indices(items, array, indices)
        items_arg, array_arg = classify_all(items), classify_all(array)
        if isinstance(items_arg, Constant):
            return GetItemsOp.log_average_factor(items, array, indices)
        if isinstance(array_arg, Constant):
            return 0.0
        if len(items) <= 1:
            return 0.0
        if to_items is None or len(to_items) != len(items):
            raise ShapeMismatchError("log_evidence_ratio needs one message to each item")

        z = 0.0
        for slot, members in slot_groups(indices).items():
            value = array[slot]
            for k in members:
                z += value.log_average_of(items[k])
                value = value * items[k]
                z -= to_items[k].log_average_of(items[k])
        return z

    @staticmethod
    @factor_operator("GetItems", "evidence", "vmp")
    def average_log_factor(items: Sequence[Any], array: Sequence[Any], indices: Sequence[int]) -> float:
        if isinstance(classify_all(items), Constant) and isinstance(classify_all(array), Constant):
            return GetItemsOp.log_average_factor(items, array, indices)
        return 0.0

    @staticmethod
    @factor_operator("GetItems", "marginal", "buffer", skip_if_all_uniform=("array",))
    def marginal_init(array: Sequence[Any]) -> Buffer:
        return Buffer("marginal", [a.clone() for a in array])

    @staticmethod
    @factor_operator("GetItems", "marginal", "buffer")
    def marginal(array: Sequence[Any], items: Sequence[Any], indices: Sequence[int],
                 marginal: Buffer) -> Buffer:
        """Set each slot of the marginal to the slot message times its items."""
        check_indices(items, array, indices)
        result = [a.clone() for a in array]
        for k, index in enumerate(indices):
            result[index] = result[index] * items[k]
        return marginal.write(result)

    @staticmethod
    @factor_operator("GetItems", "marginal", "buffer", fresh=("to_item",))
    def marginal_increment(marginal: Buffer, to_item: Any, item: Any, indices: Sequence[int],
                           result_index: int) -> Buffer:
        """Refresh one slot after ``items[result_index]`` changed."""
        if not 0 <= result_index < len(indices):
            raise ShapeMismatchError(f"result_index {result_index} outside 0..{len(indices) - 1}")
        slots = list(marginal.value)
        slots[indices[result_index]] = to_item * item
        return marginal.write(slots)

    @staticmethod
    @factor_operator("GetItems", "items", fresh=("marginal",))
    def items_average_conditional(items: Sequence[Any], array: Sequence[Any], marginal: Buffer,
                                  indices: Sequence[int], result_index: int) -> Any:
        """Message to one item: its slot's marginal with the item divided out.

        Falls back to the leave-one-out product over the slot when the
        ratio is degenerate.
        """
        check_indices(items, array, indices)
        if not 0 <= result_index < len(indices):
            raise ShapeMismatchError(f"result_index {result_index} outside 0..{len(indices) - 1}")
        slot = indices[result_index]
        outcome = try_ratio(marginal.value[slot], items[result_index])
        if isinstance(outcome, Ok):
            return outcome.value
        if not settings.ratio_fallback:
            return unwrap(outcome, "GetItems", "items")
        logger.debug("Item %d (slot %d): %s; recomputing without division",
                     result_index, slot, outcome.reason)
        return GetItemsOp.items_average_conditional_no_divide(items, array, indices, result_index)

    @staticmethod
    @factor_operator("GetItems", "items")
    def items_average_conditional_no_divide(items: Sequence[Any], array: Sequence[Any],
                                            indices: Sequence[int], result_index: int) -> Any:
        """Slot message times every other item of the same slot."""
        check_indices(items, array, indices)
        slot = indices[result_index]
        result = array[slot].clone()
        for k, index in enumerate(indices):
            if index == slot and k != result_index:
                result = result * items[k]
        return result

    @staticmethod
    @factor_operator("GetItems", "array", skip_if_all_uniform=("items",))
    def array_average_conditional(items: Sequence[Any], indices: Sequence[int],
                                  result: Sequence[Any]) -> List[Any]:
        """Message to the array: per slot, the product of the items that read it.

        Args:
            items: Item messages, or item values
            indices: Slot of each item
            result: Current array messages, used for the shape and message type

        Returns:
            New list of slot messages; slots with no items are uniform
        """
        check_indices(items, result, indices)
        messages = [r.to_uniform() for r in result]
        if isinstance(classify_all(items), Constant):
            for slot, members in slot_groups(indices).items():
                value = items[members[0]]
                if any(items[k] != value for k in members[1:]):
                    raise AllZeroError(f"known items disagree on slot {slot}")
                messages[slot] = messages[slot].point_mass(value)
            return messages
        for k, index in enumerate(indices):
            messages[index] = messages[index] * items[k]
        return messages

    @staticmethod
    @factor_operator("GetItems", "items", "vmp", skip_if_all_uniform=("array",))
    def items_average_logarithm(array: Sequence[Any], indices: Sequence[int], result_index: int) -> Any:
        if not 0 <= result_index < len(indices):
            raise ShapeMismatchError(f"result_index {result_index} outside 0..{len(indices) - 1}")
        return array[indices[result_index]].clone()

    @staticmethod
    @factor_operator("GetItems", "array", "vmp")
    def array_average_logarithm(items: Sequence[Any], indices: Sequence[int],
                                result: Sequence[Any]) -> List[Any]:
        return GetItemsOp.array_average_conditional(items, indices, result)


class GetItemsPartialOp:
    """GetItems with a per-item ``partial`` buffer.

    ``partial[k]`` is the message to the array slot of item k with item k
    itself divided out, so the message to the item is ``partial[k]`` times
    the slot message.
    """

    @staticmethod
    @factor_operator("GetItemsPartial", "partial", "buffer", skip=True)
    def partial_init(items: Sequence[Any]) -> Buffer:
        return Buffer("partial", [item.to_uniform() for item in items])

    @staticmethod
    @factor_operator("GetItemsPartial", "partial", "buffer", fresh=("to_array",))
    def partial(items: Sequence[Any], to_array: Sequence[Any], indices: Sequence[int],
                partial: Buffer) -> Buffer:
        """Divide each item out of its slot's message to the array.

        Falls back to the product of the other items of the slot when the
        ratio is degenerate.
        """
        if len(items) != len(indices):
            raise ShapeMismatchError(f"{len(items)} items but {len(indices)} indices")
        values = []
        for k, index in enumerate(indices):
            outcome = try_ratio(to_array[index], items[k])
            if isinstance(outcome, Ok) or not settings.ratio_fallback:
                values.append(unwrap(outcome, "GetItemsPartial", "partial"))
                continue
            logger.debug("Item %d (slot %d): %s; multiplying the other items instead",
                         k, index, outcome.reason)
            others = [items[j] for j, other in enumerate(indices) if other == index and j != k]
            values.append(product_with_all(items[k].to_uniform(), others))
        return partial.write(values)

    @staticmethod
    @factor_operator("GetItemsPartial", "items", fresh=("partial",))
    def items_average_conditional(partial: Buffer, array: Sequence[Any], indices: Sequence[int],
                                  result_index: int) -> Any:
        return partial.value[result_index] * array[indices[result_index]]

    @staticmethod
    @factor_operator("GetItemsPartial", "array")
    def array_increment(partial: Any, item: Any) -> Any:
        """Slot message after folding one item back into its partial product."""
        return partial * item


class GetItemOp:
    """Messages for ``item = array[index]`` with a single index."""

    @staticmethod
    def _check(array: Sequence[Any], index: int) -> None:
        if not 0 <= index < len(array):
            raise ShapeMismatchError(f"index {index} outside 0..{len(array) - 1}")

    @staticmethod
    @factor_operator("GetItem", "evidence", "evidence")
    def log_average_factor(item: Any, array: Sequence[Any], index: int) -> float:
        GetItemOp._check(array, index)
        item_arg, slot_arg = classify(item), classify(array[index])
        if isinstance(item_arg, Constant) and isinstance(slot_arg, Constant):
            return 0.0 if item == array[index] else -np.inf
        if isinstance(item_arg, Constant):
            return array[index].log_prob(item)
        if isinstance(slot_arg, Constant):
            return item.log_prob(array[index])
        return item.log_average_of(array[index])

    @staticmethod
    @factor_operator("GetItem", "evidence", "evidence")
    def log_evidence_ratio(item: Any, array: Sequence[Any], index: int) -> float:
        # A random item is a child of this factor and its evidence cancels
        if not isinstance(classify(item), Constant):
            return 0.0
        return GetItemOp.log_average_factor(item, array, index)

    @staticmethod
    @factor_operator("GetItem", "evidence", "vmp", skip=True)
    def average_log_factor() -> float:
        return 0.0

    @staticmethod
    @factor_operator("GetItem", "item", skip_if_all_uniform=("array",))
    def item_average_conditional(array: Sequence[Any], index: int) -> Any:
        GetItemOp._check(array, index)
        return array[index].clone()

    @staticmethod
    @factor_operator("GetItem", "array", skip_if_uniform=("item",))
    def array_average_conditional(item: Any, index: int, result: Sequence[Any]) -> List[Any]:
        GetItemOp._check(result, index)
        messages = [r.to_uniform() for r in result]
        if isinstance(classify(item), Constant):
            messages[index] = messages[index].point_mass(item)
        else:
            messages[index] = item.clone()
        return messages

    @staticmethod
    @factor_operator("GetItem", "item", "vmp", skip_if_all_uniform=("array",))
    def item_average_logarithm(array: Sequence[Any], index: int) -> Any:
        return GetItemOp.item_average_conditional(array, index)

    @staticmethod
    @factor_operator("GetItem", "array", "vmp", skip_if_uniform=("item",))
    def array_average_logarithm(item: Any, index: int, result: Sequence[Any]) -> List[Any]:
        return GetItemOp.array_average_conditional(item, index, result)
