#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: __main__.py
@time: 3/11/2025
@desc: `python -m pcfci`: a few examples, each from the oracle graph and from simulated data.
"""

import logging

import numpy as np

from .search import search_from_oracle_graph, search_from_data


def main():
    logging.basicConfig(level=logging.WARNING, format='%(levelname)s %(name)s: %(message)s')
    spsz = 5000
    rng = np.random.default_rng(42)

    print('In what follows we show several examples of DAG configurations,\n'
          '    and see what causal relations can be identified, from both oracle setting and real data.\n'
          '    One may check if the results from oracle and real data are consistent.\n')

    print('Eg1, A -> B <- C, B -> D, all observed:')
    dag = [('A', 'B'), ('C', 'B'), ('B', 'D')]
    for algorithm in ('pc', 'cpc', 'pcmax'):
        result = search_from_oracle_graph(dag, algorithm=algorithm)
        print(f'  [oracle] {algorithm}:', result.to_edge_dict(), f'({result.num_tests} tests)')
    EA, EB, EC, ED = (rng.uniform(-1, 1, (spsz,)) for _ in range(4))
    A = EA
    C = EC
    B = A + C + EB
    D = 2 * B + ED
    data = np.vstack([A, B, C, D]).T
    result = search_from_data(data, citest_method='fisherz', citest_alpha=0.05, names=['A', 'B', 'C', 'D'])
    print('  [data] pc:', result.to_edge_dict())
    print('=> The collider at B is found, and B -> D follows from it.')

    print('\nEg2, the same graph as a PAG, allowing for latents:')
    result = search_from_oracle_graph(dag, algorithm='fci')
    print('  [oracle] fci:', result.to_edge_dict())
    result = search_from_data(data, names=['A', 'B', 'C', 'D'], algorithm='fci')
    print('  [data] fci:', result.to_edge_dict())
    print('=> A o-> B <-o C: whether A, C cause B or share latent causes with it is not identifiable; B --> D is.')

    print('\nEg3, W -> X <- L -> Y with L latent, X -> Z <- Y:')
    result = search_from_oracle_graph([('W', 'X'), ('L', 'X'), ('L', 'Y'), ('X', 'Z'), ('Y', 'Z')], latents=['L'], algorithm='fci')
    print('  [oracle] fci:', result.to_edge_dict())
    print('=> X and Y stay adjacent through the latent L; X --> Z and Y --> Z are identified (the latter by a discriminating path).')


if __name__ == '__main__':
    main()
