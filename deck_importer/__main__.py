from deck_importer.cli import cli

cli()
