from setuptools import setup, find_packages

setup(
    name='eqsolve',
    version='0.1.0',
    description='Parser, evaluator and nonlinear solver for engineering equation files',
    author='eqsolve developers',
    packages=find_packages(exclude=['tests', 'tests.*', 'examples', 'examples.*']),
    install_requires=[
        'numpy>=1.24.0',
        'scipy>=1.10.0',
        'ply>=3.11',
        'pint>=0.22',
    ],
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
        ]
    },
    python_requires='>=3.10',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
)
