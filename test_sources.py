import unittest

from feepulse.sources import (
    COINCAP_PRICE_MAP,
    DATA_SOURCES,
    ESPLORA_MEMPOOL_MAP,
    MAX_SOURCES,
    RECOMMENDED_FEE_MAP,
    FieldSpec,
    coerce_number,
    extract_field,
    extract_fields,
    get_source,
    lookup_path,
)


class TestFieldExtraction(unittest.TestCase):

    def test_lookup_path_walks_nested_objects(self):
        data = {'bitcoin': {'usd': 65000, 'eur': 60000}}
        self.assertEqual(lookup_path(data, 'bitcoin.usd'), 65000)
        self.assertIsNone(lookup_path(data, 'bitcoin.gbp'))
        self.assertIsNone(lookup_path(data, 'ethereum.usd'))
        self.assertIsNone(lookup_path([1, 2], 'bitcoin'))

    def test_coerce_number(self):
        self.assertEqual(coerce_number(12), 12.0)
        self.assertEqual(coerce_number(4.5), 4.5)
        self.assertEqual(coerce_number(' 65000.25 '), 65000.25)
        self.assertIsNone(coerce_number(True))
        self.assertIsNone(coerce_number('fast'))
        self.assertIsNone(coerce_number(None))
        self.assertIsNone(coerce_number({'value': 1}))
        self.assertIsNone(coerce_number(float('nan')))
        self.assertIsNone(coerce_number('inf'))

    def test_first_matching_key_wins(self):
        spec = FieldSpec(('fastestFee', '2'))
        self.assertEqual(extract_field({'fastestFee': 30, '2': 25}, spec), 30.0)
        self.assertEqual(extract_field({'2': 25}, spec), 25.0)

    def test_non_numeric_candidate_falls_through(self):
        spec = FieldSpec(('a', 'b'))
        self.assertEqual(extract_field({'a': 'n/a', 'b': 7}, spec), 7.0)

    def test_no_candidate_matches(self):
        self.assertIsNone(extract_field({'x': 1}, FieldSpec(('a', 'b'))))
        self.assertIsNone(extract_field({'x': 1}, FieldSpec(())))

    def test_blockstream_numeric_keys(self):
        """Test that confirmation-target keys map onto the fee triplet."""
        data = {'1': 40.2, '2': 30.1, '3': 25.0, '6': 12.4, '144': 2.1, '504': 1.5, '1008': 1.0}
        values = extract_fields(data, RECOMMENDED_FEE_MAP)

        self.assertEqual(values['fastest'], 30.1)
        self.assertEqual(values['half_hour'], 12.4)
        self.assertEqual(values['hour'], 2.1)
        self.assertEqual(values['economy'], 1.5)
        self.assertEqual(values['minimum'], 1.0)

    def test_mempool_total_fee_scaled_to_btc(self):
        values = extract_fields({'count': 5000, 'vsize': 2500000, 'total_fee': 150000000},
                                ESPLORA_MEMPOOL_MAP)
        self.assertEqual(values['tx_count'], 5000.0)
        self.assertEqual(values['size_bytes'], 2500000.0)
        self.assertAlmostEqual(values['total_fee_btc'], 1.5)

    def test_tx_count_fallback_key(self):
        values = extract_fields({'n_tx': 42}, ESPLORA_MEMPOOL_MAP)
        self.assertEqual(values['tx_count'], 42.0)
        self.assertIsNone(values['size_bytes'])

    def test_string_valued_price(self):
        data = {'data': {'rateUsd': '65123.4567', 'changePercent24Hr': '-1.25'}}
        values = extract_fields(data, COINCAP_PRICE_MAP)
        self.assertAlmostEqual(values['usd'], 65123.4567)
        self.assertAlmostEqual(values['change_24h'], -1.25)
        self.assertIsNone(values['eur'])


class TestRegistry(unittest.TestCase):

    def test_default_providers_in_order(self):
        names = [source.name for source in DATA_SOURCES]
        self.assertEqual(names, ['mempool.space', 'blockstream.info', 'bitcoinfees.earn.com'])
        self.assertEqual(MAX_SOURCES, 3)

    def test_get_source(self):
        self.assertIs(get_source('blockstream.info'), DATA_SOURCES[1])
        self.assertIsNone(get_source('example.org'))


if __name__ == '__main__':
    unittest.main()
