import os
import unittest

from hdlscan.model import Direction, Parameter, Port
from hdlscan.parser import (
    MAX_BLOCK_CHARS,
    FastParser,
    extract_parameters,
    extract_parenthesised,
    extract_ports,
    find_header,
    find_location,
    find_module,
    scan_instances,
    split_top_level,
    strip_comments,
)

FIXTURES = os.path.dirname(os.path.abspath(__file__))


class TestStripComments(unittest.TestCase):
    def test_offsets_and_newlines_preserved(self):
        text = "a // line\nb /* block\nspans */ c"
        clean = strip_comments(text)
        self.assertEqual(len(clean), len(text))
        self.assertEqual(clean.count("\n"), text.count("\n"))
        self.assertNotIn("line", clean)
        self.assertNotIn("spans", clean)
        self.assertTrue(clean.endswith(" c"))

    def test_unterminated_block_comment_runs_to_end(self):
        self.assertEqual(strip_comments("x /* open").strip(), "x")

    def test_url_like_slashes_kept(self):
        text = 'str = "http://host";'
        self.assertEqual(strip_comments(text), text)


class TestHeaderRules(unittest.TestCase):
    def test_find_module(self):
        m = find_module("`include \"defs.svh\"\nmodule  core_top #(")
        self.assertEqual(m.group(1), "core_top")
        self.assertIsNone(find_module("package pkg; endpackage"))

    def test_extract_parenthesised_nested(self):
        text = "(a(b)c) rest"
        self.assertEqual(extract_parenthesised(text, 0), ("a(b)c", 7))

    def test_extract_parenthesised_unbalanced(self):
        self.assertIsNone(extract_parenthesised("(a(b)", 0))
        self.assertIsNone(extract_parenthesised("x", 0))

    def test_extract_parenthesised_bounded(self):
        text = "(" + "a" * (MAX_BLOCK_CHARS + 10) + ")"
        self.assertIsNone(extract_parenthesised(text, 0))

    def test_find_header_with_parameters(self):
        text = " #(parameter W = 8) (input clk);"
        header = find_header(text, 0)
        self.assertEqual(header.parameters, "parameter W = 8")
        self.assertEqual(header.ports, "input clk")
        self.assertEqual(header.end, len(text))

    def test_find_header_requires_semicolon(self):
        self.assertIsNone(find_header(" (input clk)", 0))

    def test_split_top_level(self):
        parts = split_top_level("a = f(1, 2), b = {3, 4}, c[1:0]")
        self.assertEqual([p.strip() for p in parts], ["a = f(1, 2)", "b = {3, 4}", "c[1:0]"])


class TestExtractParameters(unittest.TestCase):
    def test_typed_and_untyped(self):
        params = extract_parameters("parameter int WIDTH = 8, parameter DEPTH = 16")
        self.assertEqual(params, [Parameter("WIDTH", "8"), Parameter("DEPTH", "16")])

    def test_localparam_skipped(self):
        params = extract_parameters("parameter A = 1, localparam B = 2, C = 3")
        self.assertEqual([p.name for p in params], ["A"])

    def test_bare_item_inherits_keyword(self):
        params = extract_parameters("parameter A = 1, B = 2")
        self.assertEqual([p.name for p in params], ["A", "B"])

    def test_value_runs_to_top_level_comma(self):
        params = extract_parameters("parameter MASK = {4'h0, 4'hF}, parameter N = max(A, B)")
        self.assertEqual(params[0].default_value, "{4'h0, 4'hF}")
        self.assertEqual(params[1].default_value, "max(A, B)")

    def test_packed_parameter_type(self):
        params = extract_parameters("parameter logic [7:0] INIT = 8'hFF")
        self.assertEqual(params, [Parameter("INIT", "8'hFF")])


class TestExtractPorts(unittest.TestCase):
    def test_directions_and_types(self):
        ports = extract_ports(
            "input logic clk, input wire [7:0] data, output reg valid, inout io"
        )
        self.assertEqual(ports, [
            Port("clk", Direction.INPUT, "logic"),
            Port("data", Direction.INPUT, "wire [7:0]"),
            Port("valid", Direction.OUTPUT, "reg"),
            Port("io", Direction.INOUT, ""),
        ])

    def test_bare_names_inherit_direction_and_type(self):
        ports = extract_ports("input [7:0] a, b, output c")
        self.assertEqual(ports, [
            Port("a", Direction.INPUT, "[7:0]"),
            Port("b", Direction.INPUT, "[7:0]"),
            Port("c", Direction.OUTPUT, ""),
        ])

    def test_range_spacing_normalised(self):
        ports = extract_ports("input logic[3:0] nib")
        self.assertEqual(ports[0].type, "logic [3:0]")
        self.assertEqual(ports[0].bit_range, "[3:0]")

    def test_unpacked_dimension_not_part_of_name(self):
        ports = extract_ports("input logic [7:0] mem [4]")
        self.assertEqual(ports[0].name, "mem")

    def test_names_without_direction_ignored(self):
        self.assertEqual(extract_ports("clk, rst, q"), [])

    def test_interface_ports_skipped(self):
        ports = extract_ports("input clk, axi_if.slave bus, output [7:0] q")
        self.assertEqual(ports, [
            Port("clk", Direction.INPUT, ""),
            Port("q", Direction.OUTPUT, "[7:0]"),
        ])

    def test_interface_port_ends_inherited_direction(self):
        ports = extract_ports("input [3:0] a, my_if bus, spare, output done")
        self.assertEqual([p.name for p in ports], ["a", "done"])

    def test_typed_continuation_still_inherits(self):
        ports = extract_ports("output valid, logic [1:0] state, signed [7:0] delta")
        self.assertEqual(ports, [
            Port("valid", Direction.OUTPUT, ""),
            Port("state", Direction.OUTPUT, "logic [1:0]"),
            Port("delta", Direction.OUTPUT, "signed [7:0]"),
        ])


class TestScanInstances(unittest.TestCase):
    def test_keyword_exclusion(self):
        text = "module m(input clk); always @(posedge clk) foo <= bar; endmodule"
        found = scan_instances(text)
        self.assertNotIn("always", [f.type for f in found])
        self.assertEqual(found, [])

    def test_keyword_shaped_constructs_skipped(self):
        text = (
            "function automatic int calc(input int x); return x; endfunction\n"
            "if (a) begin end else if (b) begin end\n"
        )
        self.assertEqual(scan_instances(text), [])

    def test_parameterised_instance(self):
        text = "fifo #(.DEPTH(16), .W(8)) u_fifo (.clk(clk));"
        found = scan_instances(text)
        self.assertEqual([(f.type, f.name) for f in found], [("fifo", "u_fifo")])
        self.assertEqual(text[found[0].offset:].split()[0], "u_fifo")


class TestFindLocation(unittest.TestCase):
    def test_whole_word_match(self):
        text = "u_fifo_x\n  u_fifo (\n"
        loc = find_location(text, "u_fifo", 0, "a.sv")
        self.assertEqual((loc.line, loc.column, loc.length), (1, 2, 6))

    def test_missing_name_is_file_start(self):
        loc = find_location("nothing here", "u_x", 0, "a.sv")
        self.assertEqual((loc.file, loc.line, loc.column), ("a.sv", 0, 0))


class TestFastParser(unittest.TestCase):
    def setUp(self):
        self.parser = FastParser()

    def test_minimal_module(self):
        module = self.parser.parse(
            "module m(input clk, input [7:0] d, output [7:0] q); endmodule", "m.sv"
        )
        self.assertEqual(module.name, "m")
        self.assertEqual(module.parameters, [])
        self.assertEqual(module.ports, [
            Port("clk", Direction.INPUT, ""),
            Port("d", Direction.INPUT, "[7:0]"),
            Port("q", Direction.OUTPUT, "[7:0]"),
        ])
        self.assertEqual(module.instances, [])

    def test_no_module_returns_none(self):
        self.assertIsNone(self.parser.parse("package p; endpackage", "p.sv"))
        self.assertIsNone(self.parser.parse("// module commented_out (input a);", "c.sv"))

    def test_incomplete_header_keeps_module(self):
        module = self.parser.parse("module half (input clk,\n  output", "h.sv")
        self.assertEqual(module.name, "half")
        self.assertEqual(module.ports, [])

    def test_parse_fixture(self):
        module = self.parser.parse_file(os.path.join(FIXTURES, "sync_fifo.sv"))
        self.assertEqual(module.name, "sync_fifo")
        self.assertEqual(module.parameters, [Parameter("WIDTH", "8"), Parameter("DEPTH", "16")])
        self.assertEqual(
            [p.name for p in module.ports],
            ["clk", "rst_n", "wr_en", "wr_data", "rd_en", "rd_data", "full", "empty"],
        )
        self.assertEqual(module.get_port("wr_data").type, "logic [WIDTH-1:0]")
        self.assertEqual(module.get_port("empty"), Port("empty", Direction.OUTPUT, "logic"))
        self.assertEqual(module.instances, [])
        self.assertEqual((module.location.line, module.location.column), (1, 7))

    def test_parse_instances_and_black_box(self):
        path = os.path.join(FIXTURES, "top.sv")
        module = self.parser.parse_file(path)
        self.assertEqual(
            [(i.type, i.name) for i in module.instances],
            [("sync_fifo", "u_fifo"), ("my_ip", "u_ip")],
        )
        inst = module.instances[0]
        self.assertEqual(inst.owner_file, path)
        with open(path) as fh:
            line = fh.read().splitlines()[inst.location.line]
        self.assertTrue(line[inst.location.column:].startswith("u_fifo"))

    def test_non_ansi_ports_from_body(self):
        module = self.parser.parse_file(os.path.join(FIXTURES, "legacy_counter.v"))
        self.assertEqual(module.ports, [
            Port("clk", Direction.INPUT, ""),
            Port("reset", Direction.INPUT, ""),
            Port("count", Direction.OUTPUT, "[3:0]"),
        ])

    def test_parse_is_idempotent(self):
        path = os.path.join(FIXTURES, "top.sv")
        self.assertEqual(self.parser.parse_file(path), self.parser.parse_file(path))


if __name__ == "__main__":
    unittest.main()
