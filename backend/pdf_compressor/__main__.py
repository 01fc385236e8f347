from pdf_compressor.main import run

run()
