"""
setup.py for InvoiceTrack.

Installs the invoicetrack package, its packaged default configuration and the
`invoicetrack` command.
"""

from setuptools import setup, find_packages

setup(
    name="invoicetrack",
    version="1.0.0",  # Must match invoicetrack.__version__
    description="Invoice review workflow with an append-only action log",
    packages=find_packages(include=['invoicetrack', 'invoicetrack.*']),
    package_data={
        'invoicetrack': ['config/default_config.yaml'],
    },
    python_requires='>=3.9',
    install_requires=[
        'click',
        'pydantic>=2',
        'pyyaml',
        'sqlalchemy>=2.0',
    ],
    extras_require={
        'postgres': ['psycopg2-binary'],
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'invoicetrack=invoicetrack.cli:cli',
        ],
    },
)
