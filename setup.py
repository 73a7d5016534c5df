from setuptools import setup, find_namespace_packages

install_requires = ['numpy', 'absl-py', 'jax', 'jaxlib']

tests_require = ['scipy', 'hypothesis', 'pytest']

setup(
    name='equilutils',
    version='0.1.0',
    packages=find_namespace_packages(
        include=['equilutils', 'equilutils.*'],
        exclude=["*.tests", "*.tests.*", "tests.*", "tests"]
    ),
    url='',
    license='',
    author='',
    author_email='',
    description='Damped fixed-point iteration utilities for computing '
                'economic equilibria.',
    install_requires=install_requires,
    extras_require={'test': tests_require},
)
