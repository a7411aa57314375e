"""Frame index selection for multi-frame media."""


def sample_frame_indices(frame_count: int, stride: int) -> range:
    """
    Select the frame indices to classify.

    Yields 0, stride, 2*stride, ... strictly below frame_count. The
    returned range can be iterated any number of times.

    Args:
        frame_count: Number of decoded frames (0 gives an empty range).
        stride: Classify every stride-th frame. Callers validate stride >= 1.

    Returns:
        Ascending range of frame indices.
    """
    return range(0, max(frame_count, 0), stride)
