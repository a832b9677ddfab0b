from ztw_ecs.ztw.bitstream import BitstreamReader, BitstreamWriter
from ztw_ecs.ztw.classifier import PassState, classify, mark_zero_tree
from ztw_ecs.ztw.driver import (
    CodingReport,
    decode_pass,
    encode_pass,
    ztw_decode,
    ztw_encode,
)
from ztw_ecs.ztw.errors import BitstreamError, EndOfStream, GeometryError
from ztw_ecs.ztw.geometry import PyramidGeometry
from ztw_ecs.ztw.labels import Label
from ztw_ecs.ztw.scan import Subband, iter_scan, iter_subbands
from ztw_ecs.ztw.threshold import initial_threshold, next_threshold, threshold_for_pass

__all__ = [
    "BitstreamReader",
    "BitstreamWriter",
    "PassState",
    "classify",
    "mark_zero_tree",
    "CodingReport",
    "decode_pass",
    "encode_pass",
    "ztw_decode",
    "ztw_encode",
    "BitstreamError",
    "EndOfStream",
    "GeometryError",
    "PyramidGeometry",
    "Label",
    "Subband",
    "iter_scan",
    "iter_subbands",
    "initial_threshold",
    "next_threshold",
    "threshold_for_pass",
]
