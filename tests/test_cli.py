import json

from click.testing import CliRunner

from islandbuilder.cli import cli


def test_generate_writes_glb_and_manifest(tmp_path):
    out = tmp_path / 'island.glb'
    result = CliRunner().invoke(cli, ['generate', '--seed', '7', '-o', str(out)])
    assert result.exit_code == 0, result.output
    assert out.exists()
    manifest = json.loads((tmp_path / 'island.json').read_text())
    assert manifest['seed'] == 7
    assert 'Sampling surface: rim polygon' in result.output
    assert '[100%] Generation complete' in result.output


def test_generate_without_manifest(tmp_path):
    out = tmp_path / 'plain.glb'
    result = CliRunner().invoke(cli, ['generate', '--no-manifest',
                                      '--rim-noise', '0', '-o', str(out)])
    assert result.exit_code == 0, result.output
    assert out.exists()
    assert not (tmp_path / 'plain.json').exists()


def test_generate_with_custom_catalog(tmp_path):
    catalog = tmp_path / 'catalog.json'
    catalog.write_text(json.dumps([
        {'category': 'palms', 'variants': ['Palm'], 'count': 4,
         'min_spacing': 4.0},
    ]))
    out = tmp_path / 'palms.glb'
    result = CliRunner().invoke(cli, ['generate', '--catalog', str(catalog),
                                      '-o', str(out)])
    assert result.exit_code == 0, result.output
    manifest = json.loads((tmp_path / 'palms.json').read_text())
    assert {i['category'] for i in manifest['instances']} == {'palms'}
    assert 'palms: 4/4' in result.output


def test_generate_bad_catalog_fails(tmp_path):
    catalog = tmp_path / 'catalog.json'
    catalog.write_text('[{"variants": ["A"]}]')
    result = CliRunner().invoke(cli, ['generate', '--catalog', str(catalog),
                                      '-o', str(tmp_path / 'x.glb')])
    assert result.exit_code != 0
    assert "missing 'category'" in result.output


def test_probe_hit_and_miss():
    runner = CliRunner()
    hit = runner.invoke(cli, ['probe', '1', '60.5', '2'])
    assert hit.exit_code == 0, hit.output
    assert 'hit: 1.000 60.000 2.000' in hit.output
    assert 'slope: 0.0 deg' in hit.output

    miss = runner.invoke(cli, ['probe', '500', '60', '0'])
    assert miss.exit_code == 0
    assert miss.output.strip() == 'no hit'


def test_catalog_command():
    result = CliRunner().invoke(cli, ['catalog'])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert [e['category'] for e in data][:2] == ['trees', 'rocks']
