from setuptools import setup


setup(name='openvlm',
    version='0.1.0',
    description='Vortex lattice aerodynamic loads with analytic freestream derivatives',
    license='BSD-3',
    packages=[
        'openvlm',
        'openvlm.utils',
        'openvlm.geometry',
        'openvlm.aerodynamics',
    ],
    install_requires=[
        'numpy',
        'scipy',
        'openmdao',
    ],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=False,
)
