"""Processing nodes and the channels through which they exchange images."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .imaging import (
    ImageBuffer,
    ImageError,
    adjust_brightness_contrast,
    compute_histogram,
    gaussian_blur,
    load_image,
    save_image,
    split_channels,
)

__all__ = [
    "ChannelType",
    "ChannelDataType",
    "NodeType",
    "BlurDirection",
    "ThresholdMethod",
    "Channel",
    "Node",
    "InputNode",
    "OutputNode",
    "BrightnessContrastNode",
    "ColorChannelSplitterNode",
    "BlurNode",
    "ThresholdNode",
]

_WRITABLE_EXTENSIONS = (".png", ".jpg", ".bmp")


class ChannelType(Enum):
    INPUT = "input"
    OUTPUT = "output"


class ChannelDataType(Enum):
    IMAGE = "image"


class NodeType(Enum):
    INPUT = "input"
    OUTPUT = "output"
    BRIGHTNESS_CONTRAST = "brightness_contrast"
    COLOUR_SPLITTER = "colour_splitter"
    BLUR = "blur"
    THRESHOLD = "threshold"


class BlurDirection(Enum):
    UNIFORM = 0
    HORIZONTAL = 1
    VERTICAL = 2


class ThresholdMethod(Enum):
    BINARY = 0
    ADAPTIVE = 1
    OTSU = 2


@dataclass(eq=False)
class Channel:
    """A socket on a node; links attach to it and image data flows through it."""

    id: int
    name: str
    kind: ChannelType
    data_type: ChannelDataType = ChannelDataType.IMAGE
    attached_links: set = field(default_factory=set)
    data: ImageBuffer | None = None

    def _store(self, buffer: ImageBuffer) -> None:
        # Keep the same buffer object so consumers holding it see the update.
        if self.data is None:
            self.data = buffer
        else:
            self.data.pixels = buffer.pixels


def _extension(path: str) -> str:
    index = path.rfind(".")
    if index < 0:
        raise ValueError(f"path has no extension: {path!r}")
    return path[index:]


class Node(ABC):
    """Base class of all nodes: channels plus a dirty flag that spreads downstream."""

    name = "Node"
    type: NodeType

    def __init__(self, node_id: int) -> None:
        self.id = node_id
        self.inputs: list[Channel] = []
        self.outputs: list[Channel] = []
        self._dirty = False

    def _input(self, offset: int, name: str) -> None:
        self.inputs.append(Channel(self.id + offset, name, ChannelType.INPUT))

    def _output(self, offset: int, name: str) -> None:
        self.outputs.append(Channel(self.id + offset, name, ChannelType.OUTPUT))

    def _clear_outputs(self) -> None:
        for channel in self.outputs:
            channel.data = None

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def mark_dirty(self) -> None:
        """Flag this node and every node downstream of it for re-evaluation."""
        if self._dirty:
            return
        self._dirty = True
        for channel in self.outputs:
            for link in list(channel.attached_links):
                link.to_node.mark_dirty()

    def mark_clean(self) -> None:
        self._dirty = False

    @abstractmethod
    def evaluate(self) -> bool:
        """Recompute outputs if dirty; return whether new data was produced."""

    @abstractmethod
    def image_buffer(self) -> ImageBuffer | None:
        """The image this node shows in a preview, if any."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"


class InputNode(Node):
    """Loads an image from ``file_path``."""

    name = "Input"
    type = NodeType.INPUT

    def __init__(self, node_id: int) -> None:
        super().__init__(node_id)
        self.file_path = ""
        self.file_ext = "nil"
        self._output(1, "Image")

    def evaluate(self) -> bool:
        if not self._dirty:
            return False
        try:
            buffer = load_image(self.file_path)
        except ImageError:
            self.mark_clean()
            return False
        self.outputs[0].data = buffer
        index = self.file_path.rfind(".")
        self.file_ext = self.file_path[index:] if index >= 0 else ""
        self.mark_clean()
        return True

    def image_buffer(self) -> ImageBuffer | None:
        return self.outputs[0].data


class OutputNode(Node):
    """Writes the incoming image to a PNG, JPEG or BMP file."""

    name = "Output"
    type = NodeType.OUTPUT

    def __init__(self, node_id: int) -> None:
        super().__init__(node_id)
        self.save_file_path = ""
        self.save_file_ext = ""
        self._input(1, "Image")

    def save(self, path) -> None:
        """Set the destination and write the current input image there."""
        path = str(path)
        self.save_file_ext = _extension(path)
        self.save_file_path = path
        self.mark_dirty()
        self.evaluate()

    def evaluate(self) -> bool:
        if not self._dirty:
            return False
        if not self.save_file_path:
            return False
        if self.save_file_ext in _WRITABLE_EXTENSIONS:
            buffer = self.image_buffer()
            if buffer is None:
                raise ValueError("no image is connected to the output node")
            save_image(buffer, self.save_file_path)
        self.mark_clean()
        return False

    def image_buffer(self) -> ImageBuffer | None:
        return self.inputs[0].data


class BrightnessContrastNode(Node):
    """Shifts brightness (-100..100) and scales contrast (0..3)."""

    name = "Brightness & Contrast"
    type = NodeType.BRIGHTNESS_CONTRAST

    def __init__(self, node_id: int) -> None:
        super().__init__(node_id)
        self.brightness = 0.0
        self.contrast = 1.0
        self._input(1, "Image")
        self._output(2, "Image")

    def evaluate(self) -> bool:
        if not self._dirty:
            return False
        source = self.inputs[0].data
        if source is None:
            self._clear_outputs()
            self.mark_clean()
            return False
        result = adjust_brightness_contrast(source, self.brightness, self.contrast)
        self.outputs[0]._store(result)
        self.mark_clean()
        return True

    def image_buffer(self) -> ImageBuffer | None:
        return self.outputs[0].data


class ColorChannelSplitterNode(Node):
    """Splits an image into red, green, blue and alpha images."""

    name = "Color Splitter"
    type = NodeType.COLOUR_SPLITTER
    grey_flag_names = ("R Greyscale", "G Greyscale", "B Greyscale", "A Greyscale")

    def __init__(self, node_id: int) -> None:
        super().__init__(node_id)
        self.grey_flags = [False, False, False, False]
        self._input(1, "Image")
        for offset, name in enumerate(("Red", "Green", "Blue", "Alpha"), start=2):
            self._output(offset, name)

    def evaluate(self) -> bool:
        if not self._dirty:
            return False
        source = self.inputs[0].data
        if source is None:
            self._clear_outputs()
            self.mark_clean()
            return True
        for channel, part in zip(self.outputs, split_channels(source, self.grey_flags)):
            channel._store(part)
        self.mark_clean()
        return True

    def image_buffer(self) -> ImageBuffer | None:
        return self.inputs[0].data


class BlurNode(Node):
    """Gaussian blur with a radius of 0..20, uniform or along one axis."""

    name = "Blur"
    type = NodeType.BLUR

    def __init__(self, node_id: int) -> None:
        super().__init__(node_id)
        self.direction = BlurDirection.UNIFORM
        self.blur_radius = 0
        self._input(1, "Image")
        self._output(2, "Blurred")

    def evaluate(self) -> bool:
        if not self._dirty:
            return False
        source = self.inputs[0].data
        if source is None:
            self._clear_outputs()
            self.mark_clean()
            return True
        if self.direction is BlurDirection.UNIFORM:
            horizontal = gaussian_blur(source, self.blur_radius, True)
            result = gaussian_blur(horizontal, self.blur_radius, False)
        else:
            result = gaussian_blur(
                source, self.blur_radius, self.direction is BlurDirection.HORIZONTAL
            )
        self.outputs[0]._store(result)
        self.mark_clean()
        return True

    def image_buffer(self) -> ImageBuffer | None:
        return self.outputs[0].data


class ThresholdNode(Node):
    """Threshold node; it clears its output without an input and computes nothing yet."""

    name = "Threshold"
    type = NodeType.THRESHOLD

    def __init__(self, node_id: int) -> None:
        super().__init__(node_id)
        self.threshold_method = ThresholdMethod.BINARY
        self.threshold_value = 128
        self._input(1, "Image")
        self._output(2, "Image")

    def evaluate(self) -> bool:
        if not self._dirty:
            return False
        if self.inputs[0].data is None:
            self._clear_outputs()
            self.mark_clean()
        return True

    def image_buffer(self) -> ImageBuffer | None:
        return None

    def histogram(self) -> tuple[np.ndarray, float]:
        """Red-channel histogram of the output image, or empty bins if there is none."""
        buffer = self.outputs[0].data
        if buffer is None:
            return np.zeros(256, dtype=np.float32), 0.0
        return compute_histogram(buffer)