"""SVG page to export shapes as path elements."""

from __future__ import annotations

import copy
import gzip
import io
from dataclasses import dataclass
from typing import Optional, Union

import svgwrite
import svgwrite.base
import svgwrite.container
import svgwrite.elementfactory
from svgwrite.extensions import Inkscape

from shapekit.line_styles import LineStyles
from shapekit.shape import Shape


@dataclass
class SvgPage:
    """A page (canvas) described by SVG with a viewbox to draw inside.

    The viewbox uses the coordinate system of the shapes: x left-to-right and
    y top-to-bottom.
    Contains groups/layers:
        - root       -- (group) just contains the viewbox origin translation
            - main   -- editable->locked=False  --  hidden->display="block"
            - debug  -- editable->locked=False  --  hidden->display="none"
    """

    _inkscape: Inkscape  # extension to support layers

    drawing: svgwrite.Drawing
    root_group: svgwrite.container.Group
    main_layer: svgwrite.container.Group
    debug_layer: svgwrite.container.Group

    def __init__(
        self,
        canvas_width_mm: float,
        canvas_height_mm: float,
        viewbox_x_mm: float = 0.0,
        viewbox_y_mm: float = 0.0,
        viewbox_scale: float = 1.0,
    ):
        """
        Initialize the SVG page with specified canvas and viewbox position.

        Args:
            canvas_width_mm (float): The width of the canvas (=whole page) in millimeters.
            canvas_height_mm (float): The height of the canvas (=whole page) in millimeters.
            viewbox_x_mm (float, optional): x-coordinate of the viewbox origin on the page. Defaults to 0.
            viewbox_y_mm (float, optional): y-coordinate of the viewbox origin on the page. Defaults to 0.
            viewbox_scale (float, optional): shape units per millimeter. Defaults to 1.0.
        """
        vb_x: float = -viewbox_x_mm * viewbox_scale
        vb_y: float = -viewbox_y_mm * viewbox_scale
        vb_width: float = viewbox_scale * canvas_width_mm
        vb_height: float = viewbox_scale * canvas_height_mm

        # profile="full" to support numbers with more than 4 decimal digits
        self.drawing = svgwrite.Drawing(
            size=(f"{canvas_width_mm}mm", f"{canvas_height_mm}mm"),
            viewBox=(f"{vb_x} {vb_y} {vb_width} {vb_height}"),
            profile="full",
        )
        self.root_group = self.drawing.g(id="root")

        self._inkscape = Inkscape(self.drawing)
        self.main_layer = self._inkscape.layer(label="main", locked=False)
        self.debug_layer = self._inkscape.layer(label="debug", locked=False, display="none")

    def add(
        self,
        element: Union[svgwrite.base.BaseElement, svgwrite.elementfactory.ElementBuilder],
        add_to_debug_layer: bool = False,
    ) -> Union[svgwrite.base.BaseElement, svgwrite.elementfactory.ElementBuilder]:
        """Add a SVG element as subelement either to main or debug layer.

        Args:
            element (svgwrite.base.BaseElement): append this SVG element
            add_to_debug_layer (bool, optional): True if element should be added to debug layer. Defaults to False.

        Returns:
            svgwrite.base.BaseElement: the added element
        """
        if add_to_debug_layer:
            return self.debug_layer.add(element)
        return self.main_layer.add(element)

    def add_shape(
        self,
        shape: Shape,
        fill: str = "black",
        stroke: str = "none",
        line_styles: Optional[LineStyles] = None,
        add_to_debug_layer: bool = False,
    ) -> svgwrite.base.BaseElement:
        """Add _shape_ as path element (fill rule non-zero).

        Args:
            shape (Shape): the shape to draw
            fill (str, optional): fill color. Defaults to "black".
            stroke (str, optional): stroke color. Defaults to "none".
            line_styles (Optional[LineStyles], optional): stroke attributes, used if stroke is not "none".
            add_to_debug_layer (bool, optional): True to add to the debug layer. Defaults to False.

        Returns:
            svgwrite.base.BaseElement: the added path element
        """
        attributes = {"fill": fill, "stroke": stroke, "fill_rule": "nonzero"}
        if stroke != "none":
            if line_styles is None:
                line_styles = LineStyles()
            attributes.update(
                stroke_width=line_styles.line_width,
                stroke_linecap=line_styles.line_cap.value,
                stroke_linejoin=line_styles.line_join.value,
                stroke_miterlimit=line_styles.miter_limit,
            )
            if line_styles.has_dash():
                attributes.update(
                    stroke_dasharray=" ".join(str(dash) for dash in line_styles.line_dash),
                    stroke_dashoffset=line_styles.line_dash_offset,
                )
        # an empty "d" is not valid SVG
        path_data = shape.get_svg_path() or "M 0 0"
        return self.add(self.drawing.path(d=path_data, **attributes), add_to_debug_layer)

    def to_string(self, include_debug_layer: bool = False, pretty: bool = False, indent: int = 2) -> str:
        """The SVG document as string (the page itself stays unchanged)."""
        drawing_for_save = self.assemble_tree(
            copy.deepcopy(self.drawing),
            copy.deepcopy(self.root_group),
            copy.deepcopy(self.main_layer),
            copy.deepcopy(self.debug_layer),
            include_debug_layer,
        )
        svg_buffer = io.StringIO()
        drawing_for_save.write(svg_buffer, pretty=pretty, indent=indent)
        return svg_buffer.getvalue()

    def save_as(
        self,
        filename: str,
        include_debug_layer: bool = False,
        pretty: bool = False,
        indent: int = 2,
        compressed: bool = False,
    ):
        """Save as SVG file

        Args:
            filename (str): path and filename
            include_debug_layer (bool, optional): True if file should contain debug_layer. Defaults to False.
            pretty (bool, optional): True for easy readable output. Defaults to False.
            indent (int, optional): Indention if pretty is enabled. Defaults to 2 spaces.
            compressed (bool, optional): Save as compressed svgz-file. Defaults to False.
        """
        output_data = self.to_string(include_debug_layer, pretty, indent).encode("utf-8")
        if compressed:
            output_data = gzip.compress(output_data)

        with open(filename, "wb") as svg_file:
            svg_file.write(output_data)

    @classmethod
    def assemble_tree(
        cls,
        drawing: svgwrite.Drawing,
        root_group: svgwrite.container.Group,
        main_layer: svgwrite.container.Group,
        debug_layer: Optional[svgwrite.container.Group] = None,
        include_debug_layer: bool = False,
    ) -> svgwrite.Drawing:
        """Assemble a tree out of the given SVG elements.

        Args:
            drawing (svgwrite.Drawing): The main SVG drawing element.
            root_group (svgwrite.container.Group): The root group of the drawing.
            main_layer (svgwrite.container.Group): The main layer of the drawing.
            debug_layer (svgwrite.container.Group): The debug layer of the drawing.
            include_debug_layer (bool, optional): Include the debug layer in the tree. Defaults to False.

        Returns:
            svgwrite.Drawing: The given drawing with assembled SVG drawing elements.
        """
        drawing.add(root_group)
        if include_debug_layer and debug_layer:
            root_group.add(debug_layer)
        root_group.add(main_layer)
        return drawing

    @classmethod
    def create_page_a4(cls, viewbox_width_mm: float, viewbox_height_mm: float, viewbox_scale: float = 1.0) -> SvgPage:
        """
        Create a new page with A4 dimensions and the viewbox centered on it.

        Args:
            viewbox_width_mm (float): The width of the viewbox in mm.
            viewbox_height_mm (float): The height of the viewbox in mm.
            viewbox_scale (float, optional): shape units per millimeter. Defaults to 1.0.

        Returns:
            SvgPage: A new page with A4 dimensions.
        """
        canvas_width_mm = 210  # DIN A4 page width in mm
        canvas_height_mm = 297  # DIN A4 page height in mm

        viewbox_x_mm = (canvas_width_mm - viewbox_width_mm) / 2
        viewbox_y_mm = (canvas_height_mm - viewbox_height_mm) / 2

        return cls(canvas_width_mm, canvas_height_mm, viewbox_x_mm, viewbox_y_mm, viewbox_scale)


def main():
    """Main"""

    output_filename = "shapekit_example_page.svg"

    svg_page = SvgPage.create_page_a4(170, 120)
    outline_styles = LineStyles(line_width=0.1)

    frame = Shape.rectangle(0, 0, 170, 120)
    svg_page.add_shape(frame, fill="none", stroke="black", line_styles=outline_styles)

    circle = Shape.circle(40, 60, 30)
    rounded = Shape.rounded_rectangle_with_radii(50, 30, 80, 60, top_left=10, bottom_right=20)
    svg_page.add_shape(circle.shape_union(rounded), fill="lightgray", stroke="black", line_styles=outline_styles)

    wave = Shape().move_to(10, 110).zig_zag_to(160, 110, 4, 10, True)
    svg_page.add_shape(wave.get_stroked_shape(LineStyles(line_width=1.5, line_join="round")), fill="blue")

    # construction lines of the union for reference
    svg_page.add_shape(circle, fill="none", stroke="red", line_styles=outline_styles, add_to_debug_layer=True)
    svg_page.add_shape(rounded, fill="none", stroke="red", line_styles=outline_styles, add_to_debug_layer=True)

    print(f"save file {output_filename} ...")
    svg_page.save_as(output_filename, include_debug_layer=True, pretty=True, indent=2)
    print("save done.")


if __name__ == "__main__":
    main()
