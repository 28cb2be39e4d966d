# nodeimage

A small image-processing library built around a node graph. Nodes own
channels. Links carry images from an output channel of one node to an input
channel of another. The graph evaluates nodes in dependency order, and only
when something has changed.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Image operations

`nodeimage.imaging` works on `ImageBuffer` objects. An `ImageBuffer` is an RGBA
image with 8 bits per channel, held in `pixels` as a `numpy` array of shape
`(height, width, 4)`. It has `width`, `height` and `size` properties, and
`copy()`, `ImageBuffer.from_array(array)` and `to_array()` to make copies.

- `load_image(path)` reads any file that Pillow can open and converts it to
  RGBA. It raises `ImageError`, a subclass of `OSError`, if the file cannot be
  read or decoded.
- `save_image(buffer, path)` writes a PNG, JPEG or BMP file, chosen by a
  `.png`, `.jpg` or `.bmp` suffix. JPEG files are written without alpha. Any
  other suffix raises `ValueError`.
- `adjust_brightness_contrast(buffer, brightness, contrast)` adds
  `brightness * 2.55` to R, G and B, then scales the result around mid-grey by
  `contrast` and clamps it to 0..255. Alpha is left as it is.
- `split_channels(buffer, grey_flags)` returns red, green, blue and alpha
  images. A set flag copies that channel into all three colour components, so
  the image shows in greyscale. `grey_flags` must hold exactly four values.
- `gaussian_kernel(radius)` returns a normalised kernel of length
  `2 * radius + 1` with sigma `radius / 2`. `gaussian_blur(buffer, radius,
  horizontal)` blurs all four channels along one axis, repeating the edge
  pixels past the border.
- `compute_histogram(buffer)` returns 256 bin counts of the red channel and
  the largest count. `otsu_threshold(buffer)` returns Otsu's threshold for the
  mean of R, G and B.

## Nodes

`nodeimage.nodes` defines the node types. A node built with id `n` gets
channels with the ids `n + 1`, `n + 2`, and so on.

| Node | Inputs | Outputs | Settings |
| --- | --- | --- | --- |
| `InputNode` | none | `Image` | `file_path`; sets `file_ext` after a load |
| `OutputNode` | `Image` | none | written through `save(path)` |
| `BrightnessContrastNode` | `Image` | `Image` | `brightness` (-100..100), `contrast` (0..3) |
| `ColorChannelSplitterNode` | `Image` | `Red`, `Green`, `Blue`, `Alpha` | `grey_flags`, four booleans |
| `BlurNode` | `Image` | `Blurred` | `blur_radius`, `direction` (`BlurDirection`) |
| `ThresholdNode` | `Image` | `Image` | `threshold_method`, `threshold_value` |

A node is evaluated only when it is dirty. `mark_dirty()` flags the node and
every node downstream of it. Call it after you change a node's settings.
`evaluate()` recomputes the node's outputs and clears the flag. If a node has
no input image, `evaluate()` clears its outputs.

`image_buffer()` returns the image that best represents the node:

- the loaded image for an input node;
- the incoming image for an output node and for the channel splitter;
- the result image for the brightness/contrast and blur nodes.

An `InputNode` whose file cannot be loaded keeps its previous output.

`OutputNode.save(path)` records the destination and writes the current input
image. It raises `ValueError` in two cases: when the path has no extension,
and when no image has reached the node. It writes nothing for an extension
other than `.png`, `.jpg` or `.bmp`.

`BlurDirection.UNIFORM` blurs horizontally and then vertically.
`BlurDirection.HORIZONTAL` and `BlurDirection.VERTICAL` blur along one axis
only.

## Building a graph

```python
from nodeimage.graph import Graph
from nodeimage.nodes import InputNode, BrightnessContrastNode, OutputNode

graph = Graph()
source = InputNode(graph.new_id())
adjust = BrightnessContrastNode(graph.new_id())
sink = OutputNode(graph.new_id())
for node in (source, adjust, sink):
    graph.add_node(node)

graph.connect(source.outputs[0].id, adjust.inputs[0].id)
graph.connect(adjust.outputs[0].id, sink.inputs[0].id)

source.file_path = "photo.png"
source.mark_dirty()
adjust.brightness = 20.0
adjust.mark_dirty()
graph.evaluate()

sink.save("result.png")
```

`Graph.new_id()` hands out ids in steps of five. Its other methods:

- `Graph.connect(from_channel_id, to_channel_id)` creates a `Link`. It returns
  `False` instead if the link would create a cycle, and raises `KeyError` for
  an unknown channel id.
- `Graph.evaluate()` runs when a node is dirty or the graph has changed. It
  sorts the nodes with `topo_sort()`, evaluates each one and passes its output
  images along its links. It returns whether it ran.
- `Graph.disconnect(link_id)`, `Graph.delete_links(link_ids)` and
  `Graph.delete_nodes(node_ids)` remove links or nodes. Deleting a node also
  deletes every link attached to it. In each case the nodes downstream are
  marked dirty and the data the removed links delivered is dropped.
- `node_from_id`, `link_from_id`, `find_channel` and `node_from_channel_id`
  look up parts of the graph by id. `Link.propagated_data()` returns the image
  a link currently carries.

## What this package does not do

- It has no editor window, node canvas, image preview or file dialogs. Graphs
  are built and driven from Python code.
- It provides no command-line program.
- It does not save or load graphs.
- `ThresholdNode` does not yet threshold images. It only clears its output when
  it has no input. `ThresholdNode.histogram()` gives the red-channel histogram
  of whatever image its output holds.