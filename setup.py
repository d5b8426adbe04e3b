from setuptools import setup, find_packages
import re

# Read version from benefitcalc/__init__.py
with open('benefitcalc/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='benefit-calc',
    version=version,
    packages=find_packages(include=['benefitcalc', 'benefitcalc.*']),
    package_data={
        'benefitcalc': ['tax_params/*.yaml'],
    },
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'benefit-calc=benefitcalc.cli.__main__:main',
        ],
    },
    author='Personal',
    description='Payroll tax and Section 125 benefit calculations for proposals and billing.',
    python_requires='>=3.10',
)
