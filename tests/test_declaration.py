import unittest

from hdlscan.generators import SignalDeclarator
from hdlscan.model import Direction

INSTANTIATION = """\
sync_fifo #(
    .WIDTH ( 8 ),
    .DEPTH ( 4 )
) u_fifo (
    .clk     ( clk     ),         // input logic
    .rst_n   ( rst_n   ),         // input logic
    .wr_en   ( 1'b1    ),         // input logic
    .wr_data ( din     ),         // input logic [WIDTH-1:0]
    .rd_en   ( rd_en   ),         // input
    .rd_data ( q       ),         // output logic [WIDTH-1:0]
    .full    ( '0      ),         // output logic
    .empty   ( sel[0]  ),         // output logic
    .dup     ( din     )          // input logic [7:0]
);
"""


class TestSignalDeclaratorRead(unittest.TestCase):
    def setUp(self):
        self.signals = SignalDeclarator().read(INSTANTIATION)

    def test_connected_signals_in_order(self):
        self.assertEqual([s.name for s in self.signals], ["clk", "rst_n", "din", "rd_en", "q"])

    def test_direction_and_type_from_comment(self):
        q = self.signals[-1]
        self.assertEqual(q.direction, Direction.OUTPUT)
        self.assertEqual(q.type, "logic [WIDTH-1:0]")
        self.assertEqual(q.bit_range, "[WIDTH-1:0]")

    def test_first_occurrence_wins(self):
        din = next(s for s in self.signals if s.name == "din")
        self.assertEqual(din.bit_range, "[WIDTH-1:0]")

    def test_lines_without_protocol_comment_ignored(self):
        self.assertEqual(SignalDeclarator().read(".a ( a ),\n.b ( b )  // not a direction\n"), [])


class TestSignalDeclaratorDeclare(unittest.TestCase):
    def test_default_ignore_and_alignment(self):
        result = SignalDeclarator().generate(INSTANTIATION)
        self.assertEqual(
            result.splitlines(),
            [
                "logic [WIDTH-1:0] din;",
                "logic             rd_en;",
                "logic [WIDTH-1:0] q;",
            ],
        )

    def test_storage_class(self):
        result = SignalDeclarator(storage="wire").generate(INSTANTIATION)
        self.assertTrue(all(line.startswith("wire ") for line in result.splitlines()))

    def test_custom_ignore(self):
        result = SignalDeclarator(ignore=["din", "q"]).generate(INSTANTIATION)
        self.assertEqual(result.splitlines(), ["logic clk;", "logic rst_n;", "logic rd_en;"])

    def test_no_signals_gives_empty_text(self):
        self.assertEqual(SignalDeclarator().generate("assign a = b;"), "")


if __name__ == "__main__":
    unittest.main()
