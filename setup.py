"""
Setup script for LFADSPREP package.
"""

from setuptools import setup, find_packages
import os

# Read the README file for long description
readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
if os.path.exists(readme_path):
    with open(readme_path, 'r', encoding='utf-8') as f:
        long_description = f.read()
else:
    long_description = "LFADSPREP: multi-session input preparation for LFADS"

# Read requirements
requirements = [
    'numpy>=1.24.0',
    'scipy>=1.10.0',
    'scikit-learn>=1.2.0',
    'h5py>=3.8.0',
    'PyYAML>=6.0',
]

# Development requirements
dev_requirements = [
    'pytest>=6.0.0',
]

setup(
    name='lfadsprep',
    version='0.1.0',
    description='Multi-session alignment, run layout and input caching for LFADS',
    long_description=long_description,
    long_description_content_type='text/markdown',
    author='LFADSPREP Development Team',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    package_data={'lfadsprep': ['defaults.yaml']},
    python_requires='>=3.10',
    install_requires=requirements,
    extras_require={
        'dev': dev_requirements,
        'all': requirements + dev_requirements,
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Scientific/Engineering :: Information Analysis',
    ],
    keywords='neuroscience, lfads, spiking data, dimensionality reduction, stitching',
    include_package_data=True,
    zip_safe=False,
)
