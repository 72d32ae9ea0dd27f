import unittest
from hexarchitect.pattern import (ANY, Segment, SegmentType, PatternSyntaxError, compile_array, compile_bytes,
        compile_hex, compile_pattern, describe_pattern, hex_bytes, matches, pattern_width)
from hexarchitect.hex_utils import HIGH_NIBBLE, LOW_NIBBLE

L = SegmentType.LITERAL
W = SegmentType.WILDCARD
M = SegmentType.MIXED

class TestCompileHex(unittest.TestCase):
    def test_literal_run(self):
        self.assertEqual(compile_hex('DEADBEEF'),(Segment(L,b'\xde\xad\xbe\xef'),))

    def test_case_insensitive(self):
        self.assertEqual(compile_hex('aA aa aA Aa aa'),(Segment(L,b'\xaa'*5),))

    def test_separators_are_ignored(self):
        self.assertEqual(compile_hex('01 02\t03\r\n04'),compile_hex('01020304'))

    def test_wildcard_run_coalesces(self):
        self.assertEqual(compile_hex('01 ____ __ 02'),(Segment(L,b'\x01'),Segment(W,3),Segment(L,b'\x02')))

    def test_all_wildcards(self):
        self.assertEqual(compile_hex('________'),(Segment(W,4),))

    def test_nibble_wildcards(self):
        self.assertEqual(compile_hex('A_'),(Segment(M,((0xA0,HIGH_NIBBLE),)),))
        self.assertEqual(compile_hex('_7'),(Segment(M,((0x07,LOW_NIBBLE),)),))

    def test_nibble_bytes_stay_separate(self):
        segments = compile_hex('A_ _B __ A_')
        self.assertEqual([s.kind for s in segments],[M,M,W,M])
        self.assertEqual(pattern_width(segments),4)

    def test_empty(self):
        self.assertEqual(compile_hex(''),())
        self.assertEqual(compile_hex('  \n '),())

    def test_odd_length(self):
        with self.assertRaises(PatternSyntaxError) as cm:
            compile_hex('ABC')
        self.assertEqual(cm.exception.position,2)

    def test_odd_length_after_separators(self):
        with self.assertRaises(PatternSyntaxError):
            compile_hex('AB C')

    def test_invalid_character(self):
        with self.assertRaises(PatternSyntaxError) as cm:
            compile_hex('01 G2')
        self.assertEqual(cm.exception.position,3)
        self.assertIn("'G'",str(cm.exception))

    def test_comma_is_not_a_separator(self):
        with self.assertRaises(PatternSyntaxError):
            compile_hex('01,02')

    def test_range_not_allowed(self):
        with self.assertRaises(PatternSyntaxError) as cm:
            compile_hex('01..04')
        self.assertIn('ranges',str(cm.exception))

    def test_syntax_error_is_value_error(self):
        self.assertTrue(issubclass(PatternSyntaxError,ValueError))

class TestCompileArray(unittest.TestCase):
    def test_runs(self):
        self.assertEqual(compile_array([1,2,ANY,ANY,3]),(Segment(L,b'\x01\x02'),Segment(W,2),Segment(L,b'\x03')))

    def test_underscore_string_is_wildcard(self):
        self.assertEqual(compile_array(['_','_']),(Segment(W,2),))

    def test_empty(self):
        self.assertEqual(compile_array([]),())

    def test_out_of_range(self):
        with self.assertRaises(PatternSyntaxError) as cm:
            compile_array([1,256])
        self.assertEqual(cm.exception.position,1)
        with self.assertRaises(PatternSyntaxError):
            compile_array([-1])

    def test_unrecognized_tokens(self):
        for token in [True,'x',1.0,None,b'\x01']:
            with self.assertRaises(PatternSyntaxError):
                compile_array([token])

    def test_ranges(self):
        with self.assertRaises(PatternSyntaxError):
            compile_array([1,Ellipsis,4])
        with self.assertRaises(PatternSyntaxError):
            compile_array([1,'..',4])

class TestCompilePattern(unittest.TestCase):
    def test_grammars_agree(self):
        self.assertEqual(compile_pattern('48 45 58 __'),compile_pattern([0x48,0x45,0x58,ANY]))
        self.assertEqual(compile_pattern(b'HEX'),compile_pattern('484558'))
        self.assertEqual(compile_pattern(bytearray(b'HEX')),compile_bytes(b'HEX'))
        self.assertEqual(compile_pattern((0x48,0x45,0x58)),compile_pattern(memoryview(b'HEX')))

    def test_compiled_pattern_passes_through(self):
        segments = compile_hex('01__')
        self.assertIs(compile_pattern(segments),segments)

    def test_list_of_segments(self):
        segments = compile_hex('01__ A_')
        self.assertEqual(compile_pattern(list(segments)),segments)
        self.assertIsInstance(compile_pattern(list(segments)),tuple)

    def test_empty_byte_string(self):
        self.assertEqual(compile_pattern(b''),())

    def test_unsupported_token(self):
        with self.assertRaises(PatternSyntaxError):
            compile_pattern(42)
        with self.assertRaises(PatternSyntaxError):
            compile_pattern(None)

    def test_describe(self):
        self.assertEqual(describe_pattern(compile_pattern('0102 ____ A_ _b')),'[01, 02, __, __, A_, _B]')
        self.assertEqual(describe_pattern(()),'[]')

class TestHexBytes(unittest.TestCase):
    def test_hex_bytes(self):
        self.assertEqual(hex_bytes('01020304'),bytes([1,2,3,4]))
        self.assertEqual(hex_bytes('DEAD AF'),b'\xde\xad\xaf')

    def test_wildcards_rejected(self):
        with self.assertRaises(PatternSyntaxError):
            hex_bytes('01__')

    def test_non_str_rejected(self):
        for text in [b'0102',[1,2],None]:
            with self.assertRaises(PatternSyntaxError):
                hex_bytes(text)

    def test_round_trip(self):
        for data in [b'',b'\x00',bytes(range(256)),b'hello world']:
            self.assertEqual(hex_bytes(data.hex()),data)
            self.assertEqual(hex_bytes(' '.join('%02X' % x for x in data)),data)

class TestMatches(unittest.TestCase):
    def test_exact(self):
        data = bytes([1,2,3,4])
        self.assertFalse(matches('AABBCCDD',data))
        self.assertFalse(matches('01__FF__',data))
        self.assertTrue(matches('01__03__',data))
        self.assertTrue(matches([1,ANY,3,4],data))
        self.assertFalse(matches('010203',data))

    def test_rest(self):
        data = bytes([1,2,3,4])
        self.assertTrue(matches('01..04',data))
        self.assertTrue(matches('..',data))
        self.assertTrue(matches('0102..',data))
        self.assertTrue(matches('..0_04',data))
        self.assertFalse(matches('02..',data))
        self.assertFalse(matches('0102 ..0304 05',data))
        self.assertTrue(matches('0102..0304',data))

    def test_rest_shorter_than_ends(self):
        self.assertFalse(matches('0102..0203',b'\x01\x02\x03'))

    def test_single_rest_only(self):
        with self.assertRaises(PatternSyntaxError):
            matches('01....04',b'\x01\x04')
        with self.assertRaises(PatternSyntaxError):
            matches('01..02..04',b'\x01\x02\x04')

    def test_nibbles(self):
        self.assertTrue(matches('A_',b'\xa0'))
        self.assertTrue(matches('A_',b'\xaf'))
        self.assertFalse(matches('A_',b'\xb0'))

if __name__ == '__main__':
    unittest.main()
